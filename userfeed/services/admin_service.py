"""
Admin Service
=============

Administrator actions on feed imports: a manual "run now" trigger protected by
a signed request token, and the import status view.
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from ..database.models import FeedJob, FeedStatusRow, Owner
from ..scheduler.import_scheduler import ImportScheduler
from ..storage.options_repository import OptionsRepository
from ..storage.owner_repository import OwnerRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import AuthorizationError, CSRFError, ValidationError
from .feed_settings_service import FeedSettingsService


RUN_IMPORT_ACTION = "run_feed_import"
NOTHING_SCHEDULED = "Nothing Scheduled"
NEVER_RUN = "Has Never Run"


def format_site_time(moment: datetime, tz: ZoneInfo) -> str:
    """Render a time like ``10-17-2026 4:05pm UTC`` in the site timezone."""
    local = moment.astimezone(tz)
    hour = local.hour % 12 or 12
    meridiem = "am" if local.hour < 12 else "pm"
    return f"{local:%m-%d-%Y} {hour}:{local:%M}{meridiem} {local:%Z}"


@dataclass
class StatusReport:
    """Import status of every owner with a feed."""

    rows: List[FeedStatusRow] = field(default_factory=list)
    last_run: Optional[datetime] = None
    last_run_display: str = NEVER_RUN


class AdminService:
    """Manual import trigger and status reporting."""

    def __init__(
        self,
        owners: OwnerRepository,
        scheduler: ImportScheduler,
        options: OptionsRepository,
        feed_settings: FeedSettingsService,
        secret_key: str,
        admin_roles: List[str],
        authorized_roles: List[str],
        site_timezone: str = "UTC",
    ):
        self.owners = owners
        self.scheduler = scheduler
        self.options = options
        self.feed_settings = feed_settings
        self._secret = secret_key.encode("utf-8")
        self.admin_roles = list(admin_roles)
        self.authorized_roles = list(authorized_roles)
        self.tz = ZoneInfo(site_timezone)
        self.logger = get_logger_for_component("admin_service")

    def issue_token(self, actor: Owner) -> str:
        """Request token an administrator submits with a manual import."""
        self._require_admin(actor)
        return self._sign(actor.id)

    def run_import_now(
        self,
        actor: Owner,
        owner_id: int,
        feed_url: str,
        token: Optional[str],
    ) -> FeedJob:
        """Clear an owner's job and re-arm it to fire immediately.

        Raises:
            AuthorizationError: Actor is not an administrator
            CSRFError: Token missing or not issued to this actor
            ValidationError: No feed URL given
        """
        self._require_admin(actor)

        if not token or not hmac.compare_digest(token, self._sign(actor.id)):
            raise CSRFError("Invalid request token for manual import", actor_id=actor.id)

        feed_url = (feed_url or "").strip()
        if not feed_url:
            raise ValidationError("A feed URL is required", field_name="feed_url")

        self.logger.info(
            f"Administrator {actor.id} triggered import for owner {owner_id}",
            extra={"owner_id": owner_id, "feed_url": feed_url},
        )
        self.scheduler.clear(owner_id)
        return self.scheduler.register(
            owner_id,
            feed_url,
            self.feed_settings.get().interval_seconds,
            delay=timedelta(0),
        )

    def status_report(self) -> StatusReport:
        report = StatusReport()

        for owner in self.owners.get_owners_with_feeds(self.authorized_roles):
            next_run = self.scheduler.next_fire_time(owner.id)
            report.rows.append(
                FeedStatusRow(
                    owner_id=owner.id,
                    display_name=owner.display_name,
                    feed_url=owner.feed_url or "",
                    next_run=next_run,
                    next_run_display=(
                        format_site_time(next_run, self.tz) if next_run else NOTHING_SCHEDULED
                    ),
                )
            )

        last_run = self.options.get_last_run()
        if last_run:
            report.last_run = datetime.fromisoformat(last_run)
            report.last_run_display = format_site_time(report.last_run, self.tz)

        return report

    def _require_admin(self, actor: Owner) -> None:
        if not actor.has_any_role(self.admin_roles):
            raise AuthorizationError(
                f"User {actor.id} may not run manual imports", actor_id=actor.id
            )

    def _sign(self, actor_id: int) -> str:
        message = f"{RUN_IMPORT_ACTION}:{actor_id}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()
