"""Database seeder for manual exploration of the Conduit API."""
import asyncio
import argparse
import random
import time
from datetime import datetime, timezone, timedelta
from conduit.database import engine, async_session, Base
from conduit.models import Article, Comment, Favorite, FollowEdge, User
from conduit.security import hash_password

TOPICS = ["python", "fastapi", "postgresql", "redis", "docker", "testing",
          "performance", "security", "asyncio", "sqlalchemy"]

SEED_PASSWORD = "password123"

async def seed(small: bool = False):
    num_users = 10 if small else 50
    articles_per_user = 5 if small else 40
    follows_per_user = 3 if small else 15
    favorites_per_user = 5 if small else 30

    print(f"Seeding: {num_users} users, {num_users * articles_per_user} articles")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        # All seeded users share one password; hash it once.
        password_hash = hash_password(SEED_PASSWORD)
        users = []
        for i in range(num_users):
            user = User(
                email=f"user_{i:04d}@example.com",
                password_hash=password_hash,
                first_name="User",
                last_name=f"{i:04d}",
            )
            session.add(user)
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users (password: {SEED_PASSWORD})")

        edges = 0
        for user in users:
            others = [u for u in users if u.id != user.id]
            for target in random.sample(others, k=min(follows_per_user, len(others))):
                session.add(FollowEdge(followed_id=target.id, follower_id=user.id))
                edges += 1
        await session.flush()
        print(f"  Created {edges} follow edges")

        articles = []
        for user in users:
            for i in range(articles_per_user):
                published = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 365))
                article = Article(
                    title=f"Notes on {random.choice(TOPICS)} #{i}",
                    content=f"Things {user.full_name} learned this week. " * 20,
                    author_id=user.id,
                    published_at=published,
                    last_updated=published + timedelta(hours=random.randint(0, 48)),
                )
                session.add(article)
                articles.append(article)
        await session.flush()
        print(f"  Created {len(articles)} articles")

        favorites = 0
        comments = 0
        for user in users:
            for article in random.sample(articles, k=min(favorites_per_user, len(articles))):
                session.add(Favorite(user_id=user.id, article_id=article.id))
                favorites += 1
                if random.random() < 0.3:
                    session.add(Comment(
                        content=f"Thanks for writing this, from {user.full_name}.",
                        author_id=user.id,
                        article_id=article.id,
                        published_at=datetime.now(timezone.utc),
                    ))
                    comments += 1
        await session.flush()
        print(f"  Created {favorites} favorites and {comments} comments")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")


def main():
    parser = argparse.ArgumentParser(description="Seed the Conduit database")
    parser.add_argument("--small", action="store_true", help="Use a small dataset (10 users)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
