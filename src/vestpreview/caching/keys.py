"""Cache key builders. Keys are category-prefixed and stable per category."""

DEFAULT_PREFIX = "app:blockchain:"


def project_key(project_id: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}project:{project_id.lower()}"


def global_key(project_id: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}global:{project_id.lower()}"


def user_key(project_id: str, wallet_address: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}user:{project_id.lower()}:{wallet_address.lower()}"
