"""Wiring of the projection, the storage collaborator and the three services"""

from dataclasses import dataclass

from studio_core.config import Settings
from studio_core.domain.state import StudioState
from studio_core.domain.storage import RecordStorage
from studio_core.services.attendance import AttendanceLedger
from studio_core.services.billing import BillingScheduleEngine
from studio_core.services.roster import StudentRoster


@dataclass
class Studio:
    state: StudioState
    ledger: AttendanceLedger
    billing: BillingScheduleEngine
    roster: StudentRoster


def open_studio(store: RecordStorage, config: Settings | None = None, load: bool = True) -> Studio:
    """Build the services around one shared projection, loaded from storage by default"""
    state = StudioState()
    billing = BillingScheduleEngine(state, store, config)
    studio = Studio(
        state=state,
        ledger=AttendanceLedger(state, store, config),
        billing=billing,
        roster=StudentRoster(state, store, billing, config),
    )
    if load:
        studio.roster.load()
    return studio
