import secrets


def new_id() -> str:
    """Opaque primary key for tenants, principals and codes."""
    return secrets.token_hex(12)


def normalize_email(email: str) -> str:
    return email.strip().lower()
