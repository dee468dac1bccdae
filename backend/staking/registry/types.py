from pydantic import BaseModel

from staking.logic.enums import GamePhase


class LedgerInfo(BaseModel):
    ledger_id: str
    owner: str
    address: str
    phase: GamePhase
    participant_count: int
    max_participants: int
