# socialapp/services/wallet.py
import logging
import re
import secrets
import string

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import ValidationError as KeyValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from socialapp.core.errors import UnauthorizedError, ValidationError
from socialapp.models.nonce import WalletNonce

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
NONCE_MESSAGE = "Sign this nonce to authenticate: {nonce}"


def normalize_address(address: str | None) -> str:
    clean = (address or "").strip()
    if not _ADDRESS_RE.match(clean):
        raise ValidationError("Invalid wallet address format")
    return clean.lower()


def login_message(nonce: str) -> str:
    return NONCE_MESSAGE.format(nonce=nonce)


def issue_nonce(db: Session, address: str) -> str:
    """Replace any pending nonce for the address with a fresh 6-digit one."""
    clean_address = normalize_address(address)

    db.execute(delete(WalletNonce).where(WalletNonce.address == clean_address))
    nonce = "".join(secrets.choice(string.digits) for _ in range(6))
    db.add(WalletNonce(address=clean_address, nonce=nonce))
    db.commit()
    return nonce


def recover_signer(message: str, signature: str) -> str:
    try:
        return Account.recover_message(encode_defunct(text=message), signature=signature)
    except (ValueError, TypeError, IndexError, KeyValidationError) as e:
        raise ValidationError(f"Signature verification failed: {e}") from e


def consume_nonce(db: Session, address: str, signature: str) -> str:
    """Check the signature over the pending nonce and burn the nonce.

    Returns the normalized address. The nonce row is deleted in the
    caller's transaction, so it only disappears if the login commits.
    """
    clean_address = normalize_address(address)
    db_nonce = db.execute(
        select(WalletNonce).where(WalletNonce.address == clean_address)
    ).scalar_one_or_none()
    if not db_nonce:
        raise ValidationError("No nonce available for this address")

    recovered = recover_signer(login_message(db_nonce.nonce), signature)
    if recovered.lower() != clean_address:
        logger.info("wallet signature mismatch", extra={"address": clean_address})
        raise UnauthorizedError("Invalid signature")

    db.delete(db_nonce)
    return clean_address
