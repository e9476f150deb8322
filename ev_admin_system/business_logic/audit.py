# ev_admin_system/business_logic/audit.py

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ev_admin_system.business_logic.errors import store_errors
from ev_admin_system.data.repositories import AuditTrailRepository

logger = logging.getLogger(__name__)

SUCCESS = "success"
FAILED = "failed"


class AuditAttempt:
    """
    Handle given to the body of AuditTrail.attempt.

    The body may rename the action that gets recorded on success, or call
    fail() when it finishes without raising but did not achieve its goal.
    """

    def __init__(self, action: str, failed_action: str, cpo_id: Optional[int] = None):
        self.action = action
        self.failed_action = failed_action
        self.cpo_id = cpo_id
        self.failed = False

    def fail(self):
        self.failed = True


class AuditTrail:
    """
    Writes admin_audit_trails rows around administrative workflows.

    Every attempt leaves exactly one row: "success" when the workflow
    completes, "failed" when it raises or marks itself failed.
    """

    def __init__(self, db_session: Session):
        self.db_session = db_session
        self.audit_repo = AuditTrailRepository(db_session)

    def record(self, admin_id: Optional[int], action: str, remarks: str, cpo_id: Optional[int] = None):
        self.audit_repo.add_entry(admin_id, action, remarks, cpo_id)
        self.db_session.commit()
        logger.info(f"Audit: admin {admin_id} - {action} - {remarks}")

    def record_failure(self, admin_id: Optional[int], action: str, cpo_id: Optional[int] = None):
        """
        Records a failed attempt. Anything still pending from the failed
        workflow is discarded first; a failing write is only logged.
        """
        try:
            self.db_session.rollback()
            self.record(admin_id, action, FAILED, cpo_id)
        except SQLAlchemyError as e:
            self.db_session.rollback()
            logger.error(f"Could not write failure audit '{action}' for admin {admin_id}: {e}")

    @contextmanager
    def attempt(self, admin_id: Optional[int], action: str, failed_action: Optional[str] = None,
                cpo_id: Optional[int] = None) -> Iterator[AuditAttempt]:
        """
        Audits the enclosed block.

        Args:
            admin_id: Administrator performing the action
            action: Description recorded when the block succeeds
            failed_action: Description recorded on failure, defaults to "ATTEMPT to <action>"
            cpo_id: CPO account the action targets, if any

        Raises:
            Whatever the block raised, unchanged, after the failure row is written.
        """
        attempt = AuditAttempt(action, failed_action or f"ATTEMPT to {action}", cpo_id)
        try:
            yield attempt
        except Exception:
            self.record_failure(admin_id, attempt.failed_action, attempt.cpo_id)
            raise

        if attempt.failed:
            self.record_failure(admin_id, attempt.failed_action, attempt.cpo_id)
        else:
            with store_errors():
                self.record(admin_id, attempt.action, SUCCESS, attempt.cpo_id)
