"""Test data shared by fixtures and test modules."""
from app.core.security import create_access_token

CREATOR_WALLET = "0x" + "c" * 40
WALLET_A = "0x" + "a" * 40
WALLET_B = "0x" + "b" * 40
TX_A = "0x" + "1" * 64
TX_B = "0x" + "2" * 64

QUESTIONS = [
    {"id": "q1", "text": "What is 2 + 2?", "options": ["3", "4", "5"], "correct_index": 1},
    {"id": "q2", "text": "Capital of France?", "options": ["Paris", "Rome"], "correct_index": 0},
]


def wallet(n: int) -> str:
    """Deterministic distinct wallet address for test player n."""
    return "0x" + format(n, "040x")


def bearer(fid, address=None) -> dict:
    """Authorization header for a user, optionally carrying a wallet."""
    claims = {"fid": fid}
    if address:
        claims["address"] = address
    return {"Authorization": f"Bearer {create_access_token(claims)}"}
