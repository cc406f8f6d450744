"""Input sanitization utilities."""
import re
from typing import Optional


# Maximum length constraints for security
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_OPTION_LENGTH = 200
MAX_TX_HASH_LENGTH = 100

WALLET_ADDRESS_RE = re.compile(r'^0x[0-9a-fA-F]{40}$')
TX_HASH_RE = re.compile(r'^0x[0-9a-fA-F]+$')


def sanitize_text(text: str, max_length: Optional[int] = None, strip_html: bool = True) -> str:
    """
    Sanitize free text (titles, options, questions).

    HTML tags are stripped and whitespace normalized; entities are not
    escaped because clients escape on render.

    Raises:
        ValueError: If text exceeds max_length or contains dangerous patterns
    """
    if not isinstance(text, str):
        raise ValueError("Input must be a string")

    sanitized = text.strip()

    if max_length and len(sanitized) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    if strip_html:
        sanitized = re.sub(r'<[^>]*>', '', sanitized)

    # Malformed or encoded tags that survived stripping
    if '<' in sanitized or '>' in sanitized:
        raise ValueError("Input contains invalid HTML-like patterns")

    return re.sub(r'\s+', ' ', sanitized)


def sanitize_title(title: str) -> str:
    sanitized = sanitize_text(title, max_length=MAX_TITLE_LENGTH)
    if not sanitized:
        raise ValueError("Title cannot be empty")
    return sanitized


def sanitize_option_text(option: str) -> str:
    sanitized = sanitize_text(option, max_length=MAX_OPTION_LENGTH)
    if not sanitized:
        raise ValueError("Option text cannot be empty")
    return sanitized


def normalize_wallet_address(address: str) -> str:
    """
    Validate an EVM wallet address and lowercase it.

    Addresses are compared case-insensitively everywhere (checksum casing
    differs between wallets), so they are stored lowercase.

    Raises:
        ValueError: If the address is not 0x followed by 40 hex digits
    """
    if not isinstance(address, str):
        raise ValueError("Wallet address must be a string")

    address = address.strip()
    if not WALLET_ADDRESS_RE.match(address):
        raise ValueError("Wallet address must be 0x followed by 40 hex characters")

    return address.lower()


def validate_tx_hash(tx_hash: str) -> str:
    """
    Validate a transaction reference.

    Raises:
        ValueError: If the hash is empty, too long or not 0x-prefixed hex
    """
    if not isinstance(tx_hash, str):
        raise ValueError("Transaction hash must be a string")

    tx_hash = tx_hash.strip()

    if not tx_hash:
        raise ValueError("Transaction hash cannot be empty")

    if len(tx_hash) > MAX_TX_HASH_LENGTH:
        raise ValueError(f"Transaction hash exceeds maximum length of {MAX_TX_HASH_LENGTH} characters")

    if not TX_HASH_RE.match(tx_hash):
        raise ValueError("Transaction hash must be 0x-prefixed hex")

    return tx_hash.lower()


def validate_token_amount(amount: str) -> str:
    """
    Validate an on-chain token amount given in base units.

    Amounts are decimal strings of arbitrary size (wei), never floats.

    Raises:
        ValueError: If amount is not a non-negative integer string
    """
    if isinstance(amount, int) and not isinstance(amount, bool):
        amount = str(amount)

    if not isinstance(amount, str):
        raise ValueError("Amount must be an integer string")

    amount = amount.strip()
    if not amount.isdigit():
        raise ValueError("Amount must be a non-negative integer in base units")

    return str(int(amount))
