"""Database seeder: users, categories, posts, comments and reactions."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from forum.database import Base, async_session, engine
from forum.models import Category, Comment, Like, LikeType, Post, Role, Status, User
from forum.security import hash_password
from forum.services.rating import refresh_ratings

CATEGORIES = ["python", "fastapi", "postgresql", "redis", "docker", "testing",
              "performance", "security", "devops", "career", "off-topic"]


async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_posts = 100 if small else 2000
    max_comments = 3 if small else 8

    print(f"Seeding: {num_users} users, {num_posts} posts, up to {max_comments} comments each")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    password = hash_password("password123")

    async with async_session() as session:
        categories = [Category(title=t, description=f"Everything about {t}") for t in CATEGORIES]
        session.add_all(categories)

        users = [
            User(
                login="admin",
                email="admin@example.com",
                password_hash=password,
                full_name="Administrator",
                role=Role.ADMIN,
                email_confirmed=True,
            )
        ]
        for i in range(num_users):
            users.append(
                User(
                    login=f"user_{i:04d}",
                    email=f"user_{i:04d}@example.com",
                    password_hash=password,
                    full_name=f"User {i}",
                    email_confirmed=True,
                )
            )
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(users)} users and {len(categories)} categories")

        total_comments = 0
        total_likes = 0
        for i in range(num_posts):
            published = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365))
            author = random.choice(users)
            topic = random.choice(CATEGORIES)
            post = Post(
                author_id=author.id,
                title=f"Post {i}: questions about {topic}",
                content=f"Body of post {i} discussing {topic}. " * 10,
                status=Status.ACTIVE if random.random() > 0.1 else Status.INACTIVE,
                publish_date=published,
            )
            post.categories.extend(random.sample(categories, k=random.randint(1, 3)))
            session.add(post)
            await session.flush()

            for _ in range(random.randint(0, max_comments)):
                session.add(
                    Comment(
                        post_id=post.id,
                        author_id=random.choice(users).id,
                        content=f"Reply to post {i}.",
                        publish_date=published + timedelta(hours=random.randint(1, 72)),
                    )
                )
                total_comments += 1

            for voter in random.sample(users, k=random.randint(0, min(5, len(users)))):
                session.add(
                    Like(
                        author_id=voter.id,
                        post_id=post.id,
                        type=LikeType.LIKE if random.random() > 0.3 else LikeType.DISLIKE,
                    )
                )
                total_likes += 1

            if i % 500 == 499:
                await session.flush()
                print(f"  {i + 1} posts created")

        await session.flush()
        user_ids = (await session.execute(select(User.id))).scalars().all()
        await refresh_ratings(session, user_ids)
        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {len(users)} (login 'admin' / 'password123')")
    print(f"  Posts: {num_posts}")
    print(f"  Comments: {total_comments}")
    print(f"  Likes: {total_likes}")


def main():
    parser = argparse.ArgumentParser(description="Seed the forum database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset (100 posts)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
