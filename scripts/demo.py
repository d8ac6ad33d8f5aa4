#!/usr/bin/env python3
"""
Demo script for the farm sync layer.

This script demonstrates the keyed TTL cache and the animal collection
against an in-memory stand-in for the farm backend, so it runs without a
server.
"""

import asyncio

from farm_sync.services import AnimalCollectionService, KeyedCacheService


class DemoBackend:
    """Slow in-memory backend that counts its requests."""

    def __init__(self) -> None:
        self.requests = 0
        self.animals = [
            {"_id": "g1", "tagId": "GT-001", "name": "Daisy", "species": "Goat", "status": "Alive"},
            {"_id": "g2", "tagId": "GT-002", "name": "Billy", "species": "Goat", "status": "Alive"},
            {"_id": "c1", "tagId": "CT-001", "name": "Bessie", "species": "Cattle", "status": "Alive"},
        ]
        self.inventory = [{"item": "Hay", "quantity": 40}, {"item": "Mineral lick", "quantity": 6}]

    async def fetch_animals(self) -> list[dict]:
        self.requests += 1
        await asyncio.sleep(0.2)
        return list(self.animals)

    async def fetch_inventory(self) -> list[dict]:
        self.requests += 1
        await asyncio.sleep(0.2)
        return list(self.inventory)


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def demo_keyed_cache(backend: DemoBackend) -> None:
    """Demonstrate TTL caching, dedupe and invalidation."""
    print_section("Keyed TTL Cache")

    async with KeyedCacheService.create(default_ttl_ms=500) as cache:
        print("\n🔍 Five screens mount at once and ask for api/inventory...")
        results = await asyncio.gather(
            *(cache.get_or_fetch("api/inventory", backend.fetch_inventory) for _ in range(5))
        )
        print(f"  ✓ {len(results)} answers, backend requests so far: {backend.requests}")

        await cache.get_or_fetch("api/inventory", backend.fetch_inventory)
        print(f"  ✓ Read again within TTL, backend requests: {backend.requests}")

        await asyncio.sleep(0.6)
        await cache.get_or_fetch("api/inventory", backend.fetch_inventory)
        print(f"  ✓ Read after TTL expired, backend requests: {backend.requests}")

        removed = cache.invalidate("api/")
        print(f"\n🧹 Reseed: invalidated {removed} entries under 'api/'")
        print(f"  Stats: {cache.stats()}")


async def demo_animal_collection(backend: DemoBackend) -> None:
    """Demonstrate fetch-or-serve, local mutators and subscribers."""
    print_section("Animal Collection")

    async with AnimalCollectionService.create(fetcher=backend.fetch_animals) as animals:
        animals.subscribe(lambda snapshot: print(f"  📣 {len(snapshot)} animals: {[a.id for a in snapshot]}"))

        before = backend.requests
        await asyncio.gather(animals.fetch_all(), animals.fetch_all())
        await animals.fetch_all()
        print(f"  ✓ Three fetch_all calls, backend requests: {backend.requests - before}")

        print("\n✏️  Local changes, no network:")
        animals.add({"_id": "k1", "tagId": "GT-003", "name": "Kid", "species": "Goat"})
        animals.update("c1", {"status": "Sold", "projectedSalesPrice": 520000})
        animals.remove("g2")
        animals.update("g2", {"status": "Dead"})  # already removed: logged no-op

        sold = animals.get("c1")
        print(f"  ✓ {sold.name} is now {sold.status} at {sold.projected_sales_price:,.0f}")
        print(f"  ✓ State: {animals.state.value}, backend requests: {backend.requests - before}")


async def main() -> None:
    backend = DemoBackend()
    await demo_keyed_cache(backend)
    await demo_animal_collection(backend)
    print("\n✅ Done")


if __name__ == "__main__":
    asyncio.run(main())
