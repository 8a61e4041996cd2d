import asyncio
import sys

from routefinder.coordinates import sanitize_rings, validate_rings
from routefinder.upstream import DEFAULT_UPSTREAM_URL, fetch_routes


async def main(url: str) -> None:
    dataset = await fetch_routes(url)
    points = {}
    for point in dataset.iter_points():
        if point.id is not None:
            points.setdefault(point.id, point)

    unusable = [pid for pid, point in points.items() if sanitize_rings(point.raw_rings) is None]
    not_strict = [pid for pid, point in points.items() if validate_rings(point.raw_rings) is None]

    print("URL:", url)
    print("routes:", len(dataset.routes))
    print("unique points:", len(points))
    print("regions unusable for distance:", len(unusable), unusable[:20])
    print("regions rejected by viewport check:", len(not_strict), not_strict[:20])


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_UPSTREAM_URL))
