import threading

import pytest

from staking.logic.enums import GamePhase
from staking.logic.exceptions import InvalidAddressError, LedgerNotFoundError, UnauthorizedError
from staking.registry.manager import GameRegistry
from staking.registry.types import LedgerInfo
from staking.server.settings import StakingSettings
from staking.tests.conftest import OWNER, addr, join_all, make_config


@pytest.fixture
def registry(token, entropy, clock):
    return GameRegistry(token=token, settings=StakingSettings(), entropy=entropy, clock=clock)


class TestCreate:
    def test_create_uses_settings_defaults(self, registry):
        ledger_id = registry.create(OWNER)

        ledger = registry.get(ledger_id)
        assert ledger.ledger_id == ledger_id
        assert ledger.owner == OWNER
        assert ledger.phase == GamePhase.FORMING
        assert ledger.config == StakingSettings().default_game_config()
        assert registry.ledger_count == 1

    def test_create_with_explicit_config(self, registry):
        config = make_config(min_participants=2, max_participants=4)
        ledger = registry.get(registry.create(OWNER, config))
        assert ledger.config is config

    def test_ledgers_get_distinct_ids_and_addresses(self, registry):
        first = registry.get(registry.create(OWNER))
        second = registry.get(registry.create(OWNER))
        assert first.ledger_id != second.ledger_id
        assert first.address != second.address

    def test_owner_address_normalized(self, registry):
        ledger = registry.get(registry.create(OWNER.upper().replace("0X", "0x")))
        assert ledger.owner == OWNER

    def test_invalid_owner_rejected(self, registry):
        with pytest.raises(InvalidAddressError):
            registry.create("not-an-address")

    def test_operator_allowlist(self, token, entropy, clock):
        registry = GameRegistry(
            token=token,
            settings=StakingSettings(operators=[OWNER]),
            entropy=entropy,
            clock=clock,
        )
        registry.create(OWNER)
        with pytest.raises(UnauthorizedError):
            registry.create(addr(1))
        assert registry.ledger_count == 1

    def test_ledgers_share_the_token_ledger(self, registry, token):
        ledger = registry.get(registry.create(OWNER))
        join_all(ledger, token, addr(1))
        assert token.balance_of(ledger.address) == 10


class TestLookup:
    def test_get_unknown_raises(self, registry):
        with pytest.raises(LedgerNotFoundError, match="missing"):
            registry.get("missing")

    def test_list_ids(self, registry):
        ids = [registry.create(OWNER) for _ in range(3)]
        assert registry.list_ids() == ids

    def test_list_info(self, registry, token):
        ledger = registry.get(registry.create(OWNER))
        join_all(ledger, token, addr(1), addr(2))

        assert registry.list_info() == [
            LedgerInfo(
                ledger_id=ledger.ledger_id,
                owner=OWNER,
                address=ledger.address,
                phase=GamePhase.FORMING,
                participant_count=2,
                max_participants=100,
            ),
        ]

    def test_remove(self, registry):
        ledger_id = registry.create(OWNER)
        removed = registry.remove(ledger_id)

        assert removed.ledger_id == ledger_id
        assert registry.ledger_count == 0
        with pytest.raises(LedgerNotFoundError):
            registry.remove(ledger_id)


class TestConcurrency:
    def test_listing_while_creating(self, registry):
        errors: list[Exception] = []
        done = threading.Event()

        def create_many() -> None:
            try:
                for _ in range(200):
                    registry.create(OWNER)
            finally:
                done.set()

        def list_until_done() -> None:
            try:
                while not done.is_set():
                    registry.list_info()
                    registry.list_ids()
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=create_many), threading.Thread(target=list_until_done)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(registry.list_info()) == 200
