"""Keyed signatures for unauthenticated acta links.

A signed link replaces a login session: possession of the URL is the only
proof of authorization. The signature is an HMAC-SHA256 over the purpose and
every identifier that scopes the action, so a link minted for one purpose (or
one document) cannot be replayed for another.
"""

import hashlib
import hmac
import json
from dataclasses import dataclass
from enum import Enum
from typing import Union
from urllib.parse import urlencode

from actas_api.settings import get_settings

Identifier = Union[int, str]


class LinkPurpose(str, Enum):
    """What a signed link authorizes."""

    PARTICIPANT_APPROVAL = "participant-approval"
    DOCUMENT_DOWNLOAD = "document-download"


@dataclass(frozen=True)
class SigningConfig:
    """Server-held signing material."""

    secret: str

    def __post_init__(self):
        if not self.secret or not self.secret.strip():
            raise ValueError("A non-empty signing secret is required for acta links.")


class LinkSigner:
    """Derive and verify link signatures."""

    def __init__(self, config: SigningConfig):
        """Initialize signer with explicit signing material."""
        self._key = config.secret.encode("utf-8")

    @staticmethod
    def _message(purpose: LinkPurpose, identifiers: tuple) -> bytes:
        # JSON array encoding keeps the boundaries between values unambiguous
        parts = [LinkPurpose(purpose).value] + [str(value) for value in identifiers]
        return json.dumps(parts, separators=(",", ":")).encode("utf-8")

    def sign(self, purpose: LinkPurpose, *identifiers: Identifier) -> str:
        """Return the hex signature binding purpose and identifiers."""
        if not identifiers:
            raise ValueError("At least one identifier is required")
        message = self._message(purpose, identifiers)
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def verify(self, purpose: LinkPurpose, *identifiers_and_signature) -> bool:
        """Check a signature; the signature is the last positional argument."""
        if len(identifiers_and_signature) < 2:
            return False
        *identifiers, signature = identifiers_and_signature
        if not isinstance(signature, str) or not signature.strip():
            return False
        try:
            expected = self.sign(purpose, *identifiers)
        except ValueError:
            return False
        return hmac.compare_digest(expected.encode("utf-8"), signature.strip().encode("utf-8"))

    def approval_link(self, base_url: str, acta_id: int, participant_id: int) -> str:
        """Build the participant approval (preview) URL."""
        signature = self.sign(LinkPurpose.PARTICIPANT_APPROVAL, acta_id, participant_id)
        query = urlencode({"acta": acta_id, "participant": participant_id, "signature": signature})
        return f"{base_url.rstrip('/')}/approve?{query}"

    def download_link(self, base_url: str, acta_id: int, participant_id: int, document_id: int) -> str:
        """Build the attachment download URL for one participant and document."""
        signature = self.sign(LinkPurpose.DOCUMENT_DOWNLOAD, acta_id, participant_id, document_id)
        query = urlencode(
            {"acta": acta_id, "participant": participant_id, "doc": document_id, "signature": signature}
        )
        return f"{base_url.rstrip('/')}/documents?{query}"


def get_link_signer() -> LinkSigner:
    """Build the signer from settings (FastAPI dependency)."""
    return LinkSigner(SigningConfig(secret=get_settings().link_signing_secret or ""))
