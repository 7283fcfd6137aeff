"""
Media Provisioning
==================

Bounded Context: Audio/video credentials handed to joining participants.

The room controller only sees the MediaProvisioner protocol
(provision(room_id, participant_id) -> token). LocalMediaProvisioner is
the built-in implementation: it issues self-contained, HMAC-SHA256 signed
tokens that expire after a configurable TTL, so a media relay holding the
same secret can check them without calling back into the room service.

Token format:
    base64url(json claims) + "." + hex(hmac_sha256(secret, base64url(json claims)))

Claims:
    room_id, participant_id, iat, exp, nonce
"""

import base64
import hashlib
import hmac
import json
import logging
import secrets
import time
from typing import Any, Callable, Dict, Optional

from townsquare_room import MediaProvisioner

logger = logging.getLogger(__name__)

__all__ = ["MediaProvisioner", "ProvisioningError", "LocalMediaProvisioner"]


class ProvisioningError(Exception):
    """Raised when a media credential cannot be issued or verified."""
    pass


class LocalMediaProvisioner:
    """
    Issues and verifies signed, expiring media tokens.

    Attributes:
        token_ttl_s: Token lifetime in seconds

    Example:
        provisioner = LocalMediaProvisioner(secret="change-me-please-0123456789")
        token = provisioner.provision("3fa2b1c0", participant.participant_id)
        claims = provisioner.verify(token)
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        token_ttl_s: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        if token_ttl_s <= 0:
            raise ValueError(f"token_ttl_s must be positive, got {token_ttl_s}")

        if secret is None:
            secret = secrets.token_hex(32)
            logger.warning(
                "⚠️ No provisioning secret configured, generated one for this process "
                "(media tokens will not survive a restart)"
            )

        self._key = secret.encode("utf-8")
        self.token_ttl_s = token_ttl_s
        self._clock = clock
        self._issued = 0

    def provision(self, room_id: str, participant_id: str) -> str:
        """
        Issue a media token for one participant in one room.

        Raises:
            ProvisioningError: If room_id or participant_id is empty
        """
        if not room_id or not participant_id:
            raise ProvisioningError("room_id and participant_id are required")

        now = int(self._clock())
        claims = {
            "room_id": room_id,
            "participant_id": participant_id,
            "iat": now,
            "exp": now + self.token_ttl_s,
            "nonce": secrets.token_hex(8),
        }
        body = base64.urlsafe_b64encode(
            json.dumps(claims, separators=(",", ":"), sort_keys=True).encode("utf-8")
        ).decode("ascii")

        self._issued += 1
        logger.debug(f"🎫 Media token issued for {participant_id} in room {room_id}")
        return f"{body}.{self._sign(body)}"

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Check a token's signature and expiry.

        Returns:
            The token claims

        Raises:
            ProvisioningError: If the token is malformed, forged or expired
        """
        body, sep, signature = token.partition(".")
        if not sep or not body or not signature:
            raise ProvisioningError("Malformed media token")

        if not hmac.compare_digest(signature, self._sign(body)):
            raise ProvisioningError("Invalid media token signature")

        try:
            claims = json.loads(base64.urlsafe_b64decode(body.encode("ascii")))
        except (ValueError, UnicodeDecodeError) as e:
            raise ProvisioningError(f"Malformed media token claims: {e}")

        if claims.get("exp", 0) <= self._clock():
            raise ProvisioningError("Media token expired")

        return claims

    def _sign(self, body: str) -> str:
        return hmac.new(self._key, body.encode("ascii"), hashlib.sha256).hexdigest()

    def get_stats(self) -> Dict[str, Any]:
        return {"tokens_issued": self._issued, "token_ttl_s": self.token_ttl_s}
