"""
String helpers shared by record hooks and Slack messages.
"""


def truncate(text: str, length: int) -> str:
    """Keep the first ``length`` characters."""
    return text if len(text) <= length else text[:length]


def tail(text: str, length: int) -> str:
    """Keep the last ``length`` characters."""
    return text if len(text) <= length else text[-length:]


def full_name(first_name: str, last_name: str) -> str:
    return " ".join(part.strip() for part in (first_name or "", last_name or "") if part and part.strip())
