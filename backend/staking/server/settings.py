"""Staking service configuration via environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings.sources.base import PydanticBaseSettingsSource

from shared.validators import StringListEnvSettingsSource, parse_string_list
from staking.logic.address import normalize_address
from staking.logic.config import MIN_GAME_DURATION, GameConfig
from staking.logic.enums import WinnerReduction
from staking.logic.exceptions import InvalidAddressError


class StakingSettings(BaseSettings):
    model_config = {"env_prefix": "STAKING_"}

    log_dir: str = Field(default="backend/logs/staking", min_length=1)

    # Addresses allowed to create games; empty means anyone may.
    operators: list[str] = []

    # --- Defaults for games created without an explicit config ---
    token: str = Field(default="TKN", min_length=1)
    min_participants: int = Field(default=3, ge=1)
    max_participants: int = Field(default=100, ge=2)
    entry_fee: int = Field(default=10, gt=0)
    game_duration: int = Field(default=300, gt=MIN_GAME_DURATION)
    entry_fee_pool_percentage_deduction: int = Field(default=10, ge=0, le=100)
    min_stake_amount: int = Field(default=1, gt=0)
    winner_reduction: WinnerReduction = WinnerReduction.SCALED
    auto_cancel_below_minimum: bool = True

    @field_validator("operators", mode="before")
    @classmethod
    def validate_operators(cls, v: str | list[str]) -> list[str]:
        try:
            return [normalize_address(address) for address in parse_string_list(v, allow_empty=True)]
        except InvalidAddressError as e:
            raise ValueError(str(e)) from e

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings)

    def default_game_config(self) -> GameConfig:
        return GameConfig(
            token=self.token,
            min_participants=self.min_participants,
            max_participants=self.max_participants,
            entry_fee=self.entry_fee,
            game_duration=self.game_duration,
            entry_fee_pool_percentage_deduction=self.entry_fee_pool_percentage_deduction,
            min_stake_amount=self.min_stake_amount,
            winner_reduction=self.winner_reduction,
            auto_cancel_below_minimum=self.auto_cancel_below_minimum,
        )
