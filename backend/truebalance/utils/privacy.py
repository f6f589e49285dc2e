"""Privacy utilities for keeping secrets and merchant names out of logs."""
import re


def mask_token(token: str, visible: int = 4) -> str:
    """
    Mask an access credential for logging, keeping only the last few chars.
    """
    if not token:
        return ""
    if len(token) <= visible * 2:
        return "*" * len(token)
    return "*" * (len(token) - visible) + token[-visible:]


def obfuscate_merchant(description: str) -> str:
    """
    Obfuscate merchant names in transaction descriptions.
    Replaces alphanumeric characters with asterisks, preserves structure.
    """
    return re.sub(r'[A-Za-z0-9]', '*', description)
