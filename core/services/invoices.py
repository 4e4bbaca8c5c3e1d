import secrets

from django.utils import timezone


def generate_invoice_number(prefix: str) -> str:
    """Return ``PREFIX-YY-NNNNN`` with a random five digit suffix."""
    year = timezone.now().strftime('%y')
    return f"{prefix}-{year}-{10000 + secrets.randbelow(90000)}"
