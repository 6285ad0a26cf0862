#!/usr/bin/env python3
"""
Link a card through the relay from the command line.

Runs the card capture form against a running relay: creates a SetupIntent on
the backend, then confirms it directly with Stripe using the publishable key.

Usage:
    python3 scripts/link_card.py --token pm_card_visa
    python3 scripts/link_card.py --number 4242424242424242 --exp 12/34 --cvc 123
"""

import argparse
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from client.card_form import (  # noqa: E402
    BackendClient,
    CardCaptureForm,
    DEFAULT_BILLING_NAME,
    FormState,
)
from client.processor import CardElement, CardSetupError, StripeJsClient  # noqa: E402


def parse_expiry(value: str) -> tuple[int, int]:
    try:
        month, year = value.split("/")
        month_i, year_i = int(month), int(year)
    except ValueError:
        raise argparse.ArgumentTypeError("expiry must look like MM/YY")
    if not 1 <= month_i <= 12:
        raise argparse.ArgumentTypeError("expiry month must be 1-12")
    if year_i < 100:
        year_i += 2000
    return month_i, year_i


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Save a card for future payments")
    parser.add_argument(
        "--backend",
        default=os.environ.get("BACKEND_URL", "http://localhost:3002"),
        help="relay base URL",
    )
    parser.add_argument(
        "--publishable-key",
        default=os.environ.get("STRIPE_PUBLISHABLE_KEY", ""),
        help="Stripe publishable key (pk_...)",
    )
    parser.add_argument("--name", default=DEFAULT_BILLING_NAME, help="cardholder name")
    parser.add_argument("--token", help="test payment method token, e.g. pm_card_visa")
    parser.add_argument("--number", help="card number")
    parser.add_argument("--exp", type=parse_expiry, help="expiry as MM/YY")
    parser.add_argument("--cvc", help="card security code")
    return parser


def build_card(args) -> CardElement:
    if args.token:
        return CardElement(payment_method=args.token)
    month, year = args.exp if args.exp else (None, None)
    return CardElement(number=args.number, exp_month=month, exp_year=year, cvc=args.cvc)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    card = build_card(args)
    if not card.is_complete:
        print("[ERROR] provide --token, or --number, --exp and --cvc")
        return 2

    try:
        processor = StripeJsClient(args.publishable_key)
    except CardSetupError as e:
        print(f"[ERROR] {e}. Check STRIPE_PUBLISHABLE_KEY")
        processor = None

    form = CardCaptureForm(
        BackendClient(args.backend),
        processor,
        card,
        billing_name=args.name,
    )
    state = form.submit()

    print(form.message.text if form.message else state.value)
    return 0 if state is FormState.SUCCEEDED else 1


if __name__ == "__main__":
    sys.exit(main())
