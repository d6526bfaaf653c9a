"""Core configuration, security and token primitives."""

from .config import Settings, settings
from .results import Err, ErrorKind, Ok, Result
from .security import hash_password, needs_rehash, verify_password
from .tokens import TokenCodec, TokenKind, get_token_codec

__all__ = [
    "Settings",
    "settings",
    "Err",
    "ErrorKind",
    "Ok",
    "Result",
    "hash_password",
    "needs_rehash",
    "verify_password",
    "TokenCodec",
    "TokenKind",
    "get_token_codec",
]
