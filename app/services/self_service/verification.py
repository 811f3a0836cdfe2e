"""Email-match gate that unlocks self-service profile editing.

There is no password or token involved: an awardee proves ownership of a
profile by typing the contact email already on file. A mismatch is a normal
outcome and is reported as `NOT_VERIFIED`; only collaborator failures produce
`UNAVAILABLE`. Every negative answer carries the same generic message so the
gate never reveals whether a profile exists or which email it holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from app.clients.errors import CollaboratorError
from app.config import settings
from app.models.awardee import mask_email
from app.observability.metrics import metrics
from app.services.self_service.ports import IdentityLookup

logger = logging.getLogger(__name__)

MISMATCH_MESSAGE = (
    "Email verification failed. Please use the email associated with your awardee profile."
)
INVALID_EMAIL_MESSAGE = "Please enter a valid email"
UNAVAILABLE_MESSAGE = "Verification failed. Please try again."


class EmailMatchPolicy(str, Enum):
    EXACT = "exact"
    CASE_INSENSITIVE = "case_insensitive"
    NORMALIZED = "normalized"

    def matches(self, stored: str, claimed: str) -> bool:
        if self is EmailMatchPolicy.EXACT:
            return stored == claimed
        if self is EmailMatchPolicy.CASE_INSENSITIVE:
            return stored.casefold() == claimed.casefold()
        return stored.strip().casefold() == claimed.strip().casefold()


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    NOT_VERIFIED = "not_verified"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class VerificationResult:
    status: VerificationStatus
    reason: str | None = None

    @property
    def verified(self) -> bool:
        return self.status is VerificationStatus.VERIFIED

    @classmethod
    def ok(cls) -> "VerificationResult":
        return cls(VerificationStatus.VERIFIED, "Email verified successfully")

    @classmethod
    def mismatch(cls, reason: str = MISMATCH_MESSAGE) -> "VerificationResult":
        return cls(VerificationStatus.NOT_VERIFIED, reason)

    @classmethod
    def unavailable(cls) -> "VerificationResult":
        return cls(VerificationStatus.UNAVAILABLE, UNAVAILABLE_MESSAGE)


class Verifier(Protocol):
    def verify(self, profile_id: str, claimed_email: str) -> VerificationResult:
        ...


def looks_like_email(value: str | None) -> bool:
    """Minimal pre-flight check: non-blank and contains an `@`."""
    return bool(value and value.strip() and "@" in value)


class VerificationGate(Verifier):
    """Compares a claimed email against the one stored for a profile."""

    def __init__(
        self,
        identities: IdentityLookup,
        policy: EmailMatchPolicy | str | None = None,
    ) -> None:
        self._identities = identities
        self.policy = EmailMatchPolicy(policy or settings.email_match_policy)

    def verify(self, profile_id: str, claimed_email: str) -> VerificationResult:
        if not looks_like_email(claimed_email):
            metrics.increment("verify.rejected", tags={"reason": "invalid_email"})
            return VerificationResult.mismatch(INVALID_EMAIL_MESSAGE)

        try:
            stored = self._identities.lookup_email(profile_id)
        except CollaboratorError as exc:
            logger.error(
                "self_service.verify.unavailable",
                extra={"profile_id": profile_id, "code": exc.code, "error": str(exc)},
            )
            metrics.increment("verify.unavailable")
            return VerificationResult.unavailable()

        if not stored:
            # Unknown profile or no email on file: same answer as a mismatch.
            logger.info(
                "self_service.verify.no_anchor", extra={"profile_id": profile_id}
            )
            metrics.increment("verify.rejected", tags={"reason": "no_anchor"})
            return VerificationResult.mismatch()

        if not self.policy.matches(stored, claimed_email):
            logger.info(
                "self_service.verify.mismatch",
                extra={
                    "profile_id": profile_id,
                    "claimed": mask_email(claimed_email.strip()),
                    "policy": self.policy.value,
                },
            )
            metrics.increment("verify.rejected", tags={"reason": "mismatch"})
            return VerificationResult.mismatch()

        logger.info("self_service.verify.verified", extra={"profile_id": profile_id})
        metrics.increment("verify.verified")
        return VerificationResult.ok()
