"""Populate a development database with users, follows, articles and comments."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from blogapi import string_set
from blogapi.database import Base, async_session, engine
from blogapi.models import Article, Comment, User
from blogapi.security import hash_password
from blogapi.services import pending_update_service

DEFAULT_PASSWORD = "password123"


async def seed(small: bool = False) -> None:
    num_users = 10 if small else 50
    num_articles = 100 if small else 5000
    max_comments = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_articles} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    password = hash_password(DEFAULT_PASSWORD)

    async with async_session() as session:
        users = [
            User(name=f"user_{i:04d}", avatar=f"https://cdn.example.com/avatar/{i}.png", password=password)
            for i in range(num_users)
        ]
        session.add_all(users)
        await session.flush()
        print(f"  Created {len(users)} users (password: {DEFAULT_PASSWORD})")

        # Each user follows a few others; the reverse side goes through the queue
        # and is applied the first time the followed user is loaded.
        follows = 0
        for user in users:
            for target in random.sample(users, k=min(3, num_users)):
                if target is user:
                    continue
                string_set.update_field(user, "follower_list", target.id)
                await pending_update_service.enqueue(session, target.id, user.id, user.id)
                follows += 1
        print(f"  Queued {follows} follows")

        total_comments = 0
        for i in range(num_articles):
            author = random.choice(users)
            article = Article(
                content=f"Article {i}. " + "Lorem ipsum dolor sit amet. " * 20,
                author_id=author.id,
                selected=random.random() < 0.1,
                create_time=datetime.now(timezone.utc) - timedelta(minutes=random.randint(0, 525600)),
            )
            session.add(article)
            await session.flush()
            string_set.update_field(author, "published_article_list", article.id)

            for _ in range(random.randint(0, max_comments)):
                commenter = random.choice(users)
                comment = Comment(
                    content=f"Comment by {commenter.name}",
                    author_id=commenter.id,
                    article_id=article.id,
                )
                session.add(comment)
                await session.flush()
                string_set.update_field(commenter, "comment_list", comment.id)
                string_set.update_field(article, "comments", comment.id)
                total_comments += 1

            if (i + 1) % 500 == 0:
                print(f"  {i + 1} articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Articles: {num_articles}")
    print(f"  Comments: {total_comments}")


def main():
    parser = argparse.ArgumentParser(description="Seed the blog database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
