"""
Тесты Prediction Market Fee Distributor

Проверяемые инварианты:
1. notional 10_000, taker 10 bps → fee 10; 70/20/10 → 7 / 2 / 1
2. protocol + maker + creator == fee (остаток уходит creator)
3. Нулевая комиссия не меняет конфигурацию
4. Выплата награды не превышает пул
"""

import pytest

from fund_engine.core.domain import PMFeeAction
from fund_engine.core.errors import (
    AdminRequired,
    InsufficientBalance,
    InvalidAmount,
    InvalidFeeConfiguration,
    PMFeePaused,
    UnauthorizedCaller,
)
from fund_engine.prediction_market import PMFeeDistributor, compute_fee, split_fee


def key(n: int) -> str:
    return f"{n:064x}"


AUTHORITY = key(1)
PM_PROGRAM = key(80)

T0 = 1_700_000_000
NOTIONAL = 10_000_000_000


@pytest.fixture
def distributor():
    return PMFeeDistributor()


@pytest.fixture
def config(distributor):
    return distributor.initialize_pm_fee_config(AUTHORITY, PM_PROGRAM, T0)


@pytest.fixture
def collected(distributor, config):
    return distributor.collect_fee(config, PM_PROGRAM, PMFeeAction.TAKER_TRADE, NOTIONAL, T0 + 1)


# =============================================================================
# ТЕСТЫ: Formulas
# =============================================================================


class TestFormulas:
    def test_taker_fee(self, config):
        """10_000 × 10 bps = 10."""
        assert compute_fee(config, PMFeeAction.TAKER_TRADE, NOTIONAL) == 10_000_000

    def test_zero_rate_actions(self, config):
        """Maker и settlement по умолчанию бесплатны."""
        assert compute_fee(config, PMFeeAction.MAKER_TRADE, NOTIONAL) == 0
        assert compute_fee(config, PMFeeAction.SETTLEMENT, NOTIONAL) == 0

    def test_negative_notional(self, config):
        with pytest.raises(InvalidAmount):
            compute_fee(config, PMFeeAction.MINTING, -1)

    def test_split_70_20_10(self, config):
        """fee 10 → protocol 7, maker 2, creator 1."""
        split = split_fee(config, 10_000_000)
        assert split.protocol_e6 == 7_000_000
        assert split.maker_reward_e6 == 2_000_000
        assert split.creator_e6 == 1_000_000

    def test_split_remainder_to_creator(self, config):
        """Остаток округления уходит creator."""
        split = split_fee(config, 9)
        assert (split.protocol_e6, split.maker_reward_e6, split.creator_e6) == (6, 1, 2)


# =============================================================================
# ТЕСТЫ: Collection
# =============================================================================


class TestCollection:
    def test_collect_taker_fee(self, collected):
        """Комиссия распределяется по статистике и пулам."""
        config = collected.config
        assert collected.split.fee_e6 == 10_000_000
        assert config.total_trading_fee_e6 == 10_000_000
        assert config.total_protocol_income_e6 == 7_000_000
        assert config.maker_reward_pool_e6 == 2_000_000
        assert config.creator_reward_pool_e6 == 1_000_000
        assert config.last_update_ts == T0 + 1

    def test_collect_per_action_totals(self, distributor, collected):
        """Минтинг и погашение учитываются раздельно."""
        config = distributor.collect_fee(collected.config, PM_PROGRAM, PMFeeAction.MINTING, NOTIONAL, T0 + 2).config
        config = distributor.collect_fee(config, PM_PROGRAM, PMFeeAction.REDEMPTION, NOTIONAL, T0 + 3).config
        assert config.total_minting_fee_e6 == 10_000_000
        assert config.total_redemption_fee_e6 == 10_000_000
        assert config.total_trading_fee_e6 == 10_000_000
        assert config.total_protocol_income_e6 == 21_000_000

    def test_zero_fee_noop(self, distributor, config):
        """Нулевая комиссия возвращает конфигурацию без изменений."""
        result = distributor.collect_fee(config, PM_PROGRAM, PMFeeAction.SETTLEMENT, NOTIONAL, T0 + 5)
        assert result.split.fee_e6 == 0
        assert result.config is config

    def test_unauthorized_caller(self, distributor, config):
        with pytest.raises(UnauthorizedCaller):
            distributor.collect_fee(config, AUTHORITY, PMFeeAction.TAKER_TRADE, NOTIONAL, T0)

    def test_paused(self, distributor, config):
        paused = distributor.set_pm_fee_paused(config, AUTHORITY, True, T0)
        with pytest.raises(PMFeePaused):
            distributor.collect_fee(paused, PM_PROGRAM, PMFeeAction.TAKER_TRADE, NOTIONAL, T0)


# =============================================================================
# ТЕСТЫ: Rewards
# =============================================================================


class TestRewards:
    def test_distribute_maker_reward(self, distributor, collected):
        config = distributor.distribute_maker_reward(collected.config, PM_PROGRAM, 1_500_000, T0 + 2)
        assert config.maker_reward_pool_e6 == 500_000
        assert config.total_maker_rewards_paid_e6 == 1_500_000

    def test_distribute_creator_reward_by_authority(self, distributor, collected):
        config = distributor.distribute_creator_reward(collected.config, AUTHORITY, 1_000_000, T0 + 2)
        assert config.creator_reward_pool_e6 == 0
        assert config.total_creator_rewards_paid_e6 == 1_000_000

    def test_reward_exceeds_pool(self, distributor, collected):
        with pytest.raises(InsufficientBalance):
            distributor.distribute_creator_reward(collected.config, PM_PROGRAM, 1_000_001, T0 + 2)

    def test_reward_validation(self, distributor, collected):
        with pytest.raises(UnauthorizedCaller):
            distributor.distribute_maker_reward(collected.config, key(99), 1, T0)
        with pytest.raises(InvalidAmount):
            distributor.distribute_maker_reward(collected.config, PM_PROGRAM, 0, T0)


# =============================================================================
# ТЕСТЫ: Config management
# =============================================================================


class TestConfigManagement:
    def test_initialize_overrides(self, distributor):
        config = distributor.initialize_pm_fee_config(
            AUTHORITY, PM_PROGRAM, T0, taker_fee_bps=25, protocol_share_bps=8000, maker_reward_share_bps=1000
        )
        assert config.taker_fee_bps == 25
        assert config.protocol_share_bps == 8000
        assert config.creator_share_bps == 1000

    def test_initialize_bad_shares(self, distributor):
        with pytest.raises(InvalidFeeConfiguration):
            distributor.initialize_pm_fee_config(AUTHORITY, PM_PROGRAM, T0, protocol_share_bps=9000)

    def test_update(self, distributor, config):
        updated = distributor.update_pm_fee_config(
            config, AUTHORITY, T0 + 1, maker_fee_bps=5, protocol_share_bps=6000, creator_share_bps=2000
        )
        assert updated.maker_fee_bps == 5
        assert updated.protocol_share_bps == 6000
        assert updated.maker_reward_share_bps == 2000
        assert updated.creator_share_bps == 2000

    def test_update_admin_only(self, distributor, config):
        with pytest.raises(AdminRequired):
            distributor.update_pm_fee_config(config, PM_PROGRAM, T0, maker_fee_bps=5)

    def test_update_rejects_bad_values(self, distributor, config):
        with pytest.raises(InvalidFeeConfiguration):
            distributor.update_pm_fee_config(config, AUTHORITY, T0, protocol_share_bps=7500)
        with pytest.raises(InvalidFeeConfiguration):
            distributor.update_pm_fee_config(config, AUTHORITY, T0, taker_fee_bps=10_001)
        with pytest.raises(InvalidFeeConfiguration):
            distributor.update_pm_fee_config(config, AUTHORITY, T0, is_paused=1)

    def test_pause_admin_only(self, distributor, config):
        with pytest.raises(AdminRequired):
            distributor.set_pm_fee_paused(config, PM_PROGRAM, True, T0)
