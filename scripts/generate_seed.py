"""Generate sample jersey orders as a CSV seed file."""

import csv
import random
from datetime import datetime, timedelta
from pathlib import Path

CUSTOMERS = [
    ("Harbor City FC", "0917-555-0101", "coach@harborcity.example"),
    ("Northside Hoops", "0917-555-0102", "team@northside.example"),
    ("Riverside Juniors", "0917-555-0103", ""),
    ("Eastwood Volleyball", "0917-555-0104", "captain@eastwood.example"),
    ("St. Jude Alumni", "0917-555-0105", ""),
    ("Metro Runners", "0917-555-0106", "hello@metrorunners.example"),
]
MATERIALS = ["Dri-Fit", "Mesh", "Polyester Interlock", "Spandex Blend", "Cotton Pique"]
STATUSES = ["pending", "draft", "submitted", "completed"]
JERSEY_TYPES = ["Player", "Goalkeeper"]
SIZES = ["XS", "S", "M", "L", "XL", "XXL"]
NAMES = ["SANTOS", "REYES", "CRUZ", "GARCIA", "LIM", "TAN", "DELA ROSA", "MENDOZA", "BAUTISTA"]

rows = []
now = datetime(2025, 1, 15, 8, 0, 0)
random.seed(42)
for idx in range(1, 41):
    customer, mobile, email = random.choice(CUSTOMERS)
    status = random.choices(STATUSES, weights=[3, 2, 4, 3])[0]
    jersey_count = 0 if status == "pending" else random.randint(1, 12)
    order_date = now - timedelta(days=random.randint(0, 60), hours=random.randint(0, 20))
    jerseys = [
        "|".join(
            [
                random.choice(JERSEY_TYPES),
                random.choice(NAMES),
                str(random.randint(0, 99)),
                random.choice(["Adult", "Kids"]),
                random.choice(SIZES),
                random.choice(["Short", "Long"]),
                random.choice(["Yes", "No"]),
            ]
        )
        for _ in range(jersey_count)
    ]
    rows.append(
        {
            "reference": f"SEED-{idx:04d}",
            "customer": customer,
            "mobile": mobile,
            "email": email,
            "material": random.choice(MATERIALS),
            "status": status,
            "order_date": order_date.isoformat(timespec="seconds"),
            "jerseys": ";".join(jerseys),
        }
    )

path = Path("data/orders_seed.csv")
path.parent.mkdir(parents=True, exist_ok=True)
with path.open("w", newline="", encoding="utf-8") as file:
    writer = csv.DictWriter(file, fieldnames=list(rows[0].keys()))
    writer.writeheader()
    writer.writerows(rows)

print(f"Generated {len(rows)} rows -> {path}")
