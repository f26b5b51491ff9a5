# Services package.
#
# Each module exposes async functions holding the business rules of one
# aggregate:
#
#   post_service      posts, their categories and locks
#   comment_service   comments under a post
#   like_service      reactions on posts and comments
#   rating            denormalised user rating recompute
#   user_service      profiles and user administration
#   auth_service      registration, login, token and account flows
#   category_service  category catalogue (cached)
#   access            actor type and the shared authorization checks
#
# Service functions take the persistence ``Gateway`` first and open
# their own session or transaction, so a single unit of work never
# spans more than one connection.  They raise the typed errors from
# ``forum.errors`` and know nothing about HTTP.
