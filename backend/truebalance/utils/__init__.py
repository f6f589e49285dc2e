from .privacy import mask_token, obfuscate_merchant
from .timestamp import parse_timestamp, to_utc, utcnow
from .money import to_money

__all__ = ["mask_token", "obfuscate_merchant", "parse_timestamp", "to_utc", "utcnow", "to_money"]
