"""Certificate eligibility.

A certificate requires full course progress and, when the course has
assignments, a submission for each of them. Checking never issues or
revokes anything.
"""

from dataclasses import dataclass
from uuid import UUID

import structlog

from src.courses.service import CourseCatalogService

from .models import Certificate
from .store import ProgressStore


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProgressRequirement:
    current: int
    required: int
    met: bool


@dataclass(frozen=True)
class AssignmentRequirement:
    total: int
    submitted: int
    met: bool


@dataclass(frozen=True)
class CertificateRequirements:
    progress: ProgressRequirement
    assignments: AssignmentRequirement


@dataclass(frozen=True)
class CertificateEligibility:
    eligible: bool
    has_certificate: bool = False
    reason: str | None = None
    certificate: Certificate | None = None
    requirements: CertificateRequirements | None = None


def evaluate_certificate_eligibility(
    progress: int,
    total_assignments: int,
    submitted_assignments: int,
    min_progress: int = 100,
) -> CertificateEligibility:
    """Pure eligibility decision with a per-requirement breakdown."""
    progress_met = progress >= min_progress
    assignments_met = (
        total_assignments == 0 or submitted_assignments >= total_assignments
    )
    return CertificateEligibility(
        eligible=progress_met and assignments_met,
        requirements=CertificateRequirements(
            progress=ProgressRequirement(
                current=progress, required=min_progress, met=progress_met
            ),
            assignments=AssignmentRequirement(
                total=total_assignments,
                submitted=submitted_assignments,
                met=assignments_met,
            ),
        ),
    )


class CertificateEligibilityChecker:
    """Reads enrollment, certificate and assignment state to decide eligibility."""

    def __init__(
        self,
        catalog: CourseCatalogService,
        store: ProgressStore,
        min_progress: int = 100,
    ):
        self.catalog = catalog
        self.store = store
        self.min_progress = min_progress

    async def check(self, user_id: UUID, course_id: UUID) -> CertificateEligibility:
        enrollment = await self.store.get_enrollment(user_id, course_id)
        if enrollment is None:
            return CertificateEligibility(eligible=False, reason="not enrolled")

        certificate = await self.store.get_certificate(user_id, course_id)
        if certificate is not None:
            return CertificateEligibility(
                eligible=True, has_certificate=True, certificate=certificate
            )

        total = await self.catalog.count_assignments(course_id)
        submitted = await self.catalog.count_user_submissions(user_id, course_id)

        result = evaluate_certificate_eligibility(
            enrollment.progress, total, submitted, self.min_progress
        )
        logger.debug(
            "certificate_eligibility_checked",
            user_id=str(user_id),
            course_id=str(course_id),
            eligible=result.eligible,
        )
        return result
