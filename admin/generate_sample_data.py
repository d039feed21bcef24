#!/usr/bin/env python3
"""
Sample Data Generator for the Business Discovery Engine.

Generates realistic business records scattered around a centre point, for
local development with either the Elasticsearch or the in-memory backend.
Writes one business per line to an NDJSON file.

Example usage:
    # Generate 200 businesses around Austin, TX
    python -m admin.generate_sample_data

    # Generate a larger dataset around another city
    python -m admin.generate_sample_data --businesses 2000 --lat 40.7128 --lon -74.0060

    # Preview without writing files
    python -m admin.generate_sample_data --dry-run --verbose
"""

import json
import math
import random
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

# Allow running as script or module
if __name__ == "__main__" and __package__ is None:
    sys.path.insert(0, str(Path(__file__).parent.parent))

import click
from faker import Faker
from tqdm import tqdm

from admin.utils.cli import (
    common_options,
    echo_success,
    echo_info,
    echo_warning,
    echo_verbose,
)


# Initialize Faker with a seed for reproducibility
fake = Faker()
Faker.seed(42)
random.seed(42)

KM_PER_DEGREE_LAT = 111.195

INDUSTRIES = {
    "Food & Beverage": ["Restaurant", "Cafe", "Bakery", "Bar"],
    "Retail": ["Clothing", "Books", "Electronics", "Florist"],
    "Health & Wellness": ["Gym", "Yoga Studio", "Spa", "Pharmacy"],
    "Services": ["Salon", "Laundry", "Auto Repair", "Pet Grooming"],
}
TAGS = {
    "Restaurant": ["italian", "mexican", "thai", "bistro", "brunch", "vegan"],
    "Cafe": ["coffee", "espresso", "tea", "pastries"],
    "Bakery": ["bread", "pastries", "cakes", "gluten free"],
    "Bar": ["cocktails", "craft beer", "wine", "live music"],
}
FEATURES = [
    "Free WiFi", "Outdoor seating", "Wheelchair accessible", "Parking",
    "Delivery", "Takeout", "Pet friendly", "Reservations", "Credit cards accepted",
]
BUSINESS_TYPES = [
    "Small business", "Medium sized business", "Franchise", "Corporation",
    "Non profit organizations", "Startup", "Online business", "Others",
]
BUSINESS_TYPE_WEIGHTS = [0.4, 0.15, 0.1, 0.05, 0.05, 0.1, 0.05, 0.1]
PRICE_RANGES = ["$", "$$", "$$$", "$$$$"]
PRICE_WEIGHTS = [0.3, 0.4, 0.2, 0.1]
WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
NAME_ADJECTIVES = [
    "Golden", "Blue", "Red", "Royal", "Happy", "Lucky", "Silver", "Green",
    "Sunset", "Urban", "Classic", "Modern", "Rustic", "Cozy", "Fresh",
]


def generate_business_name(sub_industry: str) -> str:
    """Generate a plausible business name for a sub-industry."""
    style = random.choice([1, 2, 3])

    if style == 1:
        # "The Golden Cafe"
        return f"The {random.choice(NAME_ADJECTIVES)} {sub_industry}"
    elif style == 2:
        # "Maria's Bakery"
        return f"{fake.first_name()}'s {sub_industry}"
    else:
        # "Sunset Lopez Salon"
        return f"{random.choice(NAME_ADJECTIVES)} {fake.last_name()} {sub_industry}"


def random_point_near(lat: float, lon: float, radius_km: float) -> tuple[float, float]:
    """Uniformly distributed point within radius_km of (lat, lon)."""
    distance = radius_km * math.sqrt(random.random())
    bearing = random.uniform(0, 2 * math.pi)
    d_lat = distance * math.cos(bearing) / KM_PER_DEGREE_LAT
    d_lon = distance * math.sin(bearing) / (KM_PER_DEGREE_LAT * math.cos(math.radians(lat)))
    return round(lat + d_lat, 6), round(lon + d_lon, 6)


def generate_hours() -> list[dict]:
    """Weekly schedule; some businesses close on Sundays or keep partial records."""
    opens = random.choice(["06:30", "08:00", "09:00", "10:00", "11:00"])
    closes = random.choice(["15:00", "17:00", "18:00", "21:00", "22:00", "23:30"])
    closed_sunday = random.random() < 0.3

    hours = []
    for day in WEEKDAYS:
        if day == "Sunday" and closed_sunday:
            hours.append({"day": day, "isClosed": True})
        else:
            hours.append({"day": day, "open": opens, "close": closes, "isClosed": False})

    # A few legacy records only list weekdays
    if random.random() < 0.05:
        hours = hours[:5]
    return hours


def generate_metrics(age_days: int) -> dict:
    """Engagement counters that grow with the age of the listing."""
    view_count = int(random.expovariate(1 / 60) * max(1, age_days / 30))
    rating_count = random.randint(0, max(1, view_count // 8))
    rating = round(min(5.0, max(1.0, random.gauss(4.0, 0.6))), 1) if rating_count else 0.0
    return {
        "viewCount": view_count,
        "favoriteCount": random.randint(0, max(1, view_count // 5)),
        "ratingAverage": rating,
        "ratingCount": rating_count,
    }


def generate_business(
    center_lat: float,
    center_lon: float,
    radius_km: float,
    now: datetime,
    business_id: Optional[str] = None,
) -> dict:
    """Generate a single business record."""
    if business_id is None:
        business_id = str(uuid.uuid4())

    industry = random.choice(list(INDUSTRIES))
    sub_industry = random.choice(INDUSTRIES[industry])
    business_type = random.choices(BUSINESS_TYPES, weights=BUSINESS_TYPE_WEIGHTS, k=1)[0]
    online_only = business_type == "Online business"

    age_days = random.randint(1, 900)
    created_at = now - timedelta(days=age_days, minutes=random.randint(0, 1440))
    updated_at = created_at + timedelta(days=random.randint(0, age_days))

    if online_only:
        location = {"isOnlineOnly": True, "country": "US"}
    else:
        lat, lon = random_point_near(center_lat, center_lon, radius_km)
        location = {
            "isOnlineOnly": False,
            "address": fake.street_address(),
            "city": fake.city(),
            "state": fake.state_abbr(),
            "country": "US",
            "postalCode": fake.postcode(),
            "coordinates": {"type": "Point", "coordinates": [lon, lat]},
        }

    return {
        "id": business_id,
        "businessName": generate_business_name(sub_industry),
        "username": fake.user_name(),
        "businessType": business_type,
        "industry": industry,
        "subIndustry": sub_industry,
        "industryTags": random.sample(TAGS.get(sub_industry, []), k=min(2, len(TAGS.get(sub_industry, [])))),
        "description": {
            "short": fake.sentence(nb_words=10),
            "full": fake.paragraph(nb_sentences=4),
        },
        "priceRange": random.choices(PRICE_RANGES, weights=PRICE_WEIGHTS, k=1)[0],
        "location": location,
        "businessHours": [] if online_only else generate_hours(),
        "features": random.sample(FEATURES, k=random.randint(0, 4)),
        "metrics": generate_metrics(age_days),
        "completionPercentage": random.choice([40, 60, 75, 90, 100]),
        "createdAt": created_at.isoformat(),
        "updatedAt": updated_at.isoformat(),
    }


def write_ndjson(data: list[dict], filepath: Path, dry_run: bool = False) -> int:
    """Write data to an NDJSON file (one JSON object per line)."""
    if dry_run:
        return len(data)

    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, 'w') as f:
        for record in data:
            f.write(json.dumps(record) + '\n')

    return len(data)


@click.command()
@click.option(
    '--businesses',
    default=200,
    type=int,
    help='Number of businesses to generate (default: 200).'
)
@click.option('--lat', default=30.2672, type=float, help='Centre latitude (default: Austin, TX).')
@click.option('--lon', default=-97.7431, type=float, help='Centre longitude (default: Austin, TX).')
@click.option(
    '--radius-km',
    default=30.0,
    type=float,
    help='Businesses are scattered within this distance of the centre (default: 30).'
)
@click.option(
    '--output',
    default='data/businesses.ndjson',
    type=click.Path(),
    help='Output NDJSON file (default: data/businesses.ndjson).'
)
@common_options
def main(
    businesses: int,
    lat: float,
    lon: float,
    radius_km: float,
    output: str,
    dry_run: bool,
    verbose: bool,
    config: Optional[str],
):
    """
    Generate realistic sample businesses for development/testing.
    """
    output_path = Path(output)
    if not output_path.is_absolute():
        output_path = Path.cwd() / output_path

    echo_info(f"Generating {businesses} businesses within {radius_km:g} km of ({lat}, {lon})")

    if dry_run:
        echo_warning("DRY RUN - No files will be written")

    now = datetime.now(timezone.utc)
    generated = [
        generate_business(lat, lon, radius_km, now)
        for _ in tqdm(range(businesses), desc="Businesses", unit="biz")
    ]

    online_only = sum(1 for b in generated if b["location"]["isOnlineOnly"])
    echo_verbose(f"{online_only} online-only businesses", verbose)

    count = write_ndjson(generated, output_path, dry_run=dry_run)
    if dry_run:
        echo_verbose(f"Would write {count} records to {output_path}", verbose)
    else:
        echo_success(f"Wrote {count} records to {output_path}")


if __name__ == "__main__":
    main()
