"""Fetch the free company roster and run one sync cycle."""
import logging

from .config import Settings, load_settings
from .log import configure_logging
from .services.fetch import LodestoneSource
from .services.ranks import RankPolicy
from .services.replay import ReplaySource
from .services.sync import CycleResult, ReconciliationOrchestrator
from .storage import CycleLock, CycleLockHeld, JsonRosterStore, record_pull_history
from .utils import iso_now
from .webhook.sender import WebhookNotifier

log = logging.getLogger("mogtome.fetch_sync")


def build_orchestrator(settings: Settings) -> ReconciliationOrchestrator:
    if settings.replay_dir:
        log.info("Test mode: replaying rosters from %s", settings.replay_dir)
        source = ReplaySource(settings.replay_dir)
    else:
        source = LodestoneSource(settings.free_company_id, settings.lodestone_host)

    return ReconciliationOrchestrator(
        source,
        JsonRosterStore(settings.data_root),
        WebhookNotifier(
            settings.webhook_url,
            settings.api_key,
            api_key_header=settings.api_key_header,
        ),
        rank_policy=RankPolicy(settings.ranks),
        min_roster_size=settings.min_roster_size,
    )


def run_once(settings: Settings) -> CycleResult | None:
    """Run a cycle under the data-root lock; None when another cycle holds it."""
    timestamp = iso_now()
    record_source = "replay" if settings.replay_dir else "cron"
    try:
        with CycleLock(settings.data_root, settings.lock_lease_minutes):
            result = build_orchestrator(settings).run_cycle()
    except CycleLockHeld as exc:
        log.warning("Skipping sync: %s", exc)
        return None

    record_pull_history(
        settings.data_root,
        timestamp,
        result.ok,
        source=record_source,
        **result.to_json(),
    )
    return result


def main() -> int:
    configure_logging()
    settings = load_settings()
    if not settings.free_company_id and not settings.replay_dir:
        log.error("No free_company_id configured; nothing to sync.")
        return 1

    result = run_once(settings)
    if result is None:
        return 0
    if not result.ok:
        return 1
    log.info(
        "Sync complete: %d transitions applied, %d events emitted",
        result.transitions_applied,
        result.events_emitted,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
