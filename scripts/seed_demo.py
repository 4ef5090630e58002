"""Seed a demo user, roadmap and issue into the database."""
import asyncio

from roadmapdb import Database, RecordStore

DEMO_USER = {"name": "Demo User", "email": "demo@example.com"}

DEMO_ROADMAPS = [
    {
        "name": "Learn Rust",
        "description": "From ownership to async",
        "topic": "programming",
        "data": {"tabs": [{"title": "Basics", "nodes": ["ownership", "borrowing"]}]},
    },
    {
        "name": "Linear Algebra",
        "description": "Vectors, matrices and eigenvalues",
        "topic": "math",
        "data": {"tabs": [{"title": "Vectors", "nodes": ["span", "basis"]}]},
    },
]


async def main():
    async with RecordStore(Database()) as store:
        user = await store.get_where("users", "email", DEMO_USER["email"])
        if user:
            user_id = user["id"]
            print(f"Skipping {DEMO_USER['email']} - already exists (id={user_id})")
        else:
            user_id = await store.insert("users", DEMO_USER)
            print(f"Created user: {DEMO_USER['email']} (id={user_id})")

        for roadmap in DEMO_ROADMAPS:
            existing = await store.get_where("roadmaps", "name", roadmap["name"], "user_id", user_id)
            if existing:
                print(f"Skipping {roadmap['name']} - already exists")
                continue

            roadmap_id = await store.insert("roadmaps", {**roadmap, "user_id": user_id})
            await store.insert(
                "issues",
                {"roadmap_id": roadmap_id, "user_id": user_id, "title": "Add more resources"},
            )
            print(f"Created: {roadmap['name']} (id={roadmap_id})")


if __name__ == "__main__":
    asyncio.run(main())
