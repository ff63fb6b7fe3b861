#!/usr/bin/env python3
"""
Complete booking and payment flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_pay.py --listing-id qwetu-aparthotel --move-in 2026-11-01
    python scripts/flow_book_and_pay.py --listing-id qwetu-aparthotel --move-in 2026-11-01 --reject

Flow:
    1. Issue tenant and admin tokens
    2. Create booking
    3. Initiate payment (paybill instructions)
    4. Confirm payment
    5. Admin approves (or rejects)
    6. Fetch booking receipt
"""

import argparse
import json
import sys
import uuid

import httpx

from app.core.security import create_user_token

BASE_URL = "http://localhost:8000"

TENANT_EMAIL = "student@unistay.co.ke"
TENANT_PHONE = "0712345678"
ADMIN_EMAIL = "admin@unistay.co.ke"


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=10.0, follow_redirects=True)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=10.0, follow_redirects=True)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Complete booking and payment flow")
    parser.add_argument("--listing-id", required=True, help="Listing id")
    parser.add_argument("--move-in", required=True, help="Move-in date (YYYY-MM-DD)")
    parser.add_argument("--tenants", type=int, default=1, help="Number of tenants")
    parser.add_argument("--reject", action="store_true", help="Reject instead of approving")
    args = parser.parse_args()

    # Step 1: Tokens
    print_step(1, "Issue tokens")
    tenant_token = create_user_token(f"tenant-{uuid.uuid4().hex[:8]}", TENANT_EMAIL, "tenant")
    admin_token = create_user_token("admin-1", ADMIN_EMAIL, "admin")
    print(f"Tenant: {TENANT_EMAIL}\nAdmin:  {ADMIN_EMAIL}")

    # Step 2: Create booking
    print_step(2, "Create booking")
    booking_result = api_request(tenant_token, "POST", "/api/v1/bookings/", {
        "listing_id": args.listing_id,
        "move_in_date": args.move_in,
        "tenant_count": args.tenants,
        "phone": TENANT_PHONE,
    })
    if not print_result(booking_result, ["id", "listing_name", "booking_fee", "total_rent", "status"]):
        sys.exit(1)
    booking_id = booking_result["data"]["id"]

    # Step 3: Initiate payment
    print_step(3, "Initiate payment")
    payment_result = api_request(tenant_token, "POST", "/api/v1/payments/initiate", {
        "booking_id": booking_id,
        "phone": TENANT_PHONE,
    })
    if not print_result(payment_result, ["amount", "currency", "status", "instructions"]):
        sys.exit(1)

    # Step 4: Confirm payment
    print_step(4, "Confirm payment")
    confirm_result = api_request(tenant_token, "POST", "/api/v1/payments/confirm", {
        "booking_id": booking_id,
        "phone": TENANT_PHONE,
        "transaction_code": f"QK{uuid.uuid4().hex[:8].upper()}",
    })
    if not print_result(confirm_result, ["receipt_number", "amount", "confirmed_at"]):
        sys.exit(1)

    # Step 5: Admin decision
    action = "reject" if args.reject else "approve"
    print_step(5, f"Admin {action}s booking")
    review_result = api_request(admin_token, "POST", f"/api/v1/admin/bookings/{booking_id}/{action}")
    if not print_result(review_result, ["id", "status", "admin_confirmed_at", "admin_rejected_at"]):
        sys.exit(1)

    if args.reject:
        print("\n" + "="*60)
        print("FLOW COMPLETE (booking rejected)")
        print("="*60)
        return

    # Step 6: Receipt
    print_step(6, "Fetch booking receipt")
    receipt_result = api_request(tenant_token, "GET", f"/api/v1/bookings/{booking_id}/receipt")
    if not print_result(receipt_result):
        sys.exit(1)

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)
    print(f"Booking:     {booking_id}")
    print(f"Fee paid:    KES {booking_result['data']['booking_fee']}")
    print(f"Monthly rent: KES {booking_result['data']['total_rent']}")


if __name__ == "__main__":
    main()
