"""
LeadsFlow CRM - Issue a license key

Run: python scripts/generate_license.py <customer-email> [--purchase-code CODE]
         [--expires 2027-01-01] [--max-users 10] [--features all]
"""

import argparse
import sys
import uuid
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import now_iso, parse_iso
from models.setup import PRODUCT_ID, LicenseData
from services.license import generate_license, validate_license


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue a LeadsFlow CRM license key")
    parser.add_argument("customer_email")
    parser.add_argument("--purchase-code", default=None)
    parser.add_argument("--expires", default=None, help="ISO date; omit for a perpetual license")
    parser.add_argument("--max-users", type=int, default=None)
    parser.add_argument("--features", default="all", help="comma separated")
    args = parser.parse_args()

    expires_at = None
    if args.expires:
        expires_at = parse_iso(args.expires).isoformat()

    data = LicenseData(
        productId=PRODUCT_ID,
        purchaseCode=args.purchase_code or str(uuid.uuid4()).upper(),
        customerEmail=args.customer_email,
        issuedAt=now_iso(),
        expiresAt=expires_at,
        features=[f.strip() for f in args.features.split(",") if f.strip()],
        maxUsers=args.max_users,
    )
    key = generate_license(data)

    result = validate_license(key)
    if not result.valid:
        print(f"Generated key does not validate: {result.error}", file=sys.stderr)
        return 1

    print(key)
    return 0


if __name__ == "__main__":
    sys.exit(main())
