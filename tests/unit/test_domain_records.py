"""
Тесты доменных записей и конверсий единиц

Проверяемые инварианты:
1. Записи frozen: изменение только через model_copy
2. Поля фиксированной ширины отвергают значения вне диапазона
3. Закрытый фонд не может быть открыт
4. Доли распределения PM комиссий дают 10000
5. float запрещён в денежных конверсиях
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from fund_engine.core.domain import (
    DEFAULT_VIP_BONUS_BPS,
    MAX_RELAYERS,
    ZERO_KEY,
    FeeConfig,
    Fund,
    FundConfig,
    FundStats,
    InsuranceFundConfig,
    LPPosition,
    PMFeeAction,
    PredictionMarketFeeConfig,
    ReferralConfig,
    ReferralLink,
    RelayerEntry,
    bps_to_fraction,
    from_e6,
    is_valid_referral_code,
    pubkey_from_bytes,
    pubkey_to_bytes,
    to_e6,
)
from fund_engine.core.errors import Overflow


def key(n: int) -> str:
    return f"{n:064x}"


@pytest.fixture
def fund():
    return Fund(
        address=key(1),
        manager=key(2),
        name="Alpha",
        fund_vault=key(3),
        share_mint=key(4),
    )


# =============================================================================
# ТЕСТЫ: Units
# =============================================================================


class TestUnits:
    def test_to_e6_accepts_decimal_int_str(self):
        """Decimal, int и str конвертируются точно."""
        assert to_e6(Decimal("1.5")) == 1_500_000
        assert to_e6(1000) == 1_000_000_000
        assert to_e6("0.000001") == 1

    def test_to_e6_rejects_float(self):
        """float запрещён."""
        with pytest.raises(TypeError):
            to_e6(1.5)

    def test_to_e6_rejects_excess_precision(self):
        """Точность выше 1e-6 не усекается молча."""
        with pytest.raises(ValueError):
            to_e6("0.0000001")

    def test_to_e6_overflow(self):
        """Сумма вне i64 → Overflow."""
        with pytest.raises(Overflow):
            to_e6("1e20")

    def test_from_e6_and_bps(self):
        """Обратные конверсии в Decimal."""
        assert from_e6(2_500_000) == Decimal("2.5")
        assert bps_to_fraction(100) == Decimal("0.01")

    def test_pubkey_bytes(self):
        """Ключ: 32 байта ↔ 64 hex символа."""
        raw = bytes(range(32))
        assert pubkey_to_bytes(pubkey_from_bytes(raw)) == raw
        with pytest.raises(ValueError):
            pubkey_from_bytes(b"\x01" * 31)
        with pytest.raises(ValueError):
            pubkey_to_bytes("ab" * 16)


# =============================================================================
# ТЕСТЫ: Fund / LPPosition
# =============================================================================


class TestFundRecord:
    def test_defaults(self, fund):
        """Новый фонд открыт, NAV и HWM равны номиналу."""
        assert fund.is_open and not fund.is_paused and not fund.is_closed
        assert fund.stats.current_nav_e6 == 1_000_000
        assert fund.stats.high_water_mark_e6 == 1_000_000
        assert fund.can_deposit()
        assert fund.can_withdraw()

    def test_frozen(self, fund):
        """Запись нельзя изменить на месте."""
        with pytest.raises(ValidationError):
            fund.is_paused = True

    def test_name_length_in_bytes(self):
        """Имя ограничено 32 байтами UTF-8."""
        with pytest.raises(ValidationError):
            Fund(address=key(1), manager=key(2), name="я" * 17, fund_vault=key(3), share_mint=key(4))
        with pytest.raises(ValidationError):
            Fund(address=key(1), manager=key(2), name="", fund_vault=key(3), share_mint=key(4))

    def test_closed_fund_cannot_be_open(self):
        """is_closed и is_open взаимоисключающие."""
        with pytest.raises(ValidationError):
            Fund(
                address=key(1), manager=key(2), name="x", fund_vault=key(3), share_mint=key(4),
                is_closed=True, is_open=True,
            )

    def test_paused_fund_blocks_deposits_and_withdrawals(self, fund):
        """Пауза запрещает и депозиты, и вывод."""
        paused = fund.model_copy(update={"is_paused": True})
        assert not paused.can_deposit()
        assert not paused.can_withdraw()

    def test_invalid_pubkey_rejected(self):
        """Ключ должен быть 64 hex символа в нижнем регистре."""
        with pytest.raises(ValidationError):
            LPPosition(fund="XYZ", investor=key(1))

    def test_stats_u64_bounds(self):
        """total_shares — u64."""
        with pytest.raises(ValidationError):
            FundStats(total_shares=-1)

    def test_position_is_empty(self):
        """Позиция без долей пуста."""
        position = LPPosition(fund=key(1), investor=key(5))
        assert position.is_empty()
        assert not position.model_copy(update={"shares": 1}).is_empty()


# =============================================================================
# ТЕСТЫ: Insurance / Referral / PM / Program
# =============================================================================


class TestOtherRecords:
    def test_insurance_income(self):
        """Суммарный и чистый доход буфера."""
        config = InsuranceFundConfig(
            fund=key(1),
            authorized_caller=key(9),
            total_liquidation_income_e6=300,
            total_adl_profit_e6=200,
            total_shortfall_payout_e6=450,
        )
        assert config.total_income_e6() == 500
        assert config.net_income_e6() == 50

    def test_insurance_threshold_non_negative(self):
        """Порог ADL неотрицателен."""
        with pytest.raises(ValidationError):
            InsuranceFundConfig(fund=key(1), authorized_caller=key(9), adl_trigger_threshold_e6=-1)

    def test_referral_code_format(self):
        """Код: 1..12 символов [A-Za-z0-9_-]."""
        assert is_valid_referral_code("ALPHA_01")
        assert is_valid_referral_code("a-b")
        assert not is_valid_referral_code("")
        assert not is_valid_referral_code("THIRTEEN_CHAR")
        assert not is_valid_referral_code("no spaces")

    def test_referral_defaults(self):
        """Ставки по умолчанию и VIP таблица из 6 уровней."""
        config = ReferralConfig(authority=key(1))
        assert config.referrer_share_bps == 2000
        assert config.referee_discount_bps == 1000
        assert config.referrer_vip_bonus_bps == DEFAULT_VIP_BONUS_BPS
        assert config.authorized_caller == ZERO_KEY
        assert config.min_settlement_amount_e6 == 10_000_000

    def test_referral_vip_table_length(self):
        """VIP таблица ровно из 6 элементов."""
        with pytest.raises(ValidationError):
            ReferralConfig(authority=key(1), referrer_vip_bonus_bps=(0, 100))

    def test_link_rejects_bad_code(self):
        """Ссылка с невалидным кодом не создаётся."""
        with pytest.raises(ValidationError):
            ReferralLink(referrer=key(1), code="bad code")

    def test_pm_shares_must_sum(self):
        """Доли распределения PM комиссий дают 10000."""
        with pytest.raises(ValidationError):
            PredictionMarketFeeConfig(authority=key(1), authorized_caller=key(2), protocol_share_bps=8000)

    def test_pm_fee_bps_for(self):
        """Ставка выбирается по типу операции."""
        config = PredictionMarketFeeConfig(authority=key(1), authorized_caller=key(2), maker_fee_bps=5)
        assert config.fee_bps_for(PMFeeAction.MINTING) == 10
        assert config.fee_bps_for(PMFeeAction.MAKER_TRADE) == 5
        assert config.fee_bps_for(PMFeeAction.SETTLEMENT) == 0

    def test_program_relayer_capacity(self):
        """Список relayers ограничен MAX_RELAYERS."""
        entries = tuple(RelayerEntry(relayer=key(10 + i)) for i in range(MAX_RELAYERS + 1))
        with pytest.raises(ValidationError):
            FundConfig(authority=key(1), vault_program=key(2), ledger_program=key(3), relayers=entries)

    def test_program_rejects_duplicate_relayers(self):
        """Повтор relayer в списке запрещён."""
        entry = RelayerEntry(relayer=key(10))
        with pytest.raises(ValidationError):
            FundConfig(authority=key(1), vault_program=key(2), ledger_program=key(3), relayers=(entry, entry))

    def test_program_active_not_above_total(self):
        """active_funds не больше total_funds."""
        with pytest.raises(ValidationError):
            FundConfig(authority=key(1), vault_program=key(2), ledger_program=key(3), active_funds=1)

    def test_find_relayer(self):
        """Поиск relayer по ключу."""
        program = FundConfig(
            authority=key(1), vault_program=key(2), ledger_program=key(3),
            relayers=(RelayerEntry(relayer=key(10)),),
        )
        assert program.relayer_count == 1
        assert program.find_relayer(key(10)).is_active
        assert program.find_relayer(key(11)) is None


# =============================================================================
# ТЕСТЫ: Field bounds
# =============================================================================


class TestFieldBounds:
    @pytest.mark.parametrize(
        "build",
        [
            lambda: InsuranceFundConfig(fund=key(1), authorized_caller=key(9), adl_trigger_threshold_e6=-1),
            lambda: InsuranceFundConfig(fund=key(1), authorized_caller=key(9), withdrawal_delay_secs=-5),
            lambda: FeeConfig(fee_collection_interval=-1),
            lambda: ReferralConfig(authority=key(1), min_settlement_amount_e6=-1),
            lambda: ReferralConfig(authority=key(1), reward_validity_secs=-1),
            lambda: ReferralLink(referrer=key(1), code="ALPHA", custom_referrer_share_bps=10_001),
            lambda: ReferralLink(referrer=key(1), code="ALPHA", custom_referee_discount_bps=10_001),
            lambda: RelayerEntry(relayer=key(10), single_tx_limit_e6=-1),
            lambda: RelayerEntry(relayer=key(10), daily_limit_e6=-1),
            lambda: RelayerEntry(relayer=key(10), daily_used_e6=-1),
            lambda: PredictionMarketFeeConfig(authority=key(1), authorized_caller=key(2), taker_fee_bps=60_000),
            lambda: PredictionMarketFeeConfig(authority=key(1), authorized_caller=key(2), settlement_fee_bps=10_001),
        ],
    )
    def test_out_of_range_rejected(self, build):
        """Неотрицательные лимиты и ставки не выше 10000 bps."""
        with pytest.raises(ValidationError):
            build()

    def test_boundaries_accepted(self):
        """Границы диапазонов допустимы."""
        link = ReferralLink(referrer=key(1), code="ALPHA", custom_referrer_share_bps=10_000)
        assert link.custom_referrer_share_bps == 10_000
        assert FeeConfig(fee_collection_interval=0).fee_collection_interval == 0
        config = PredictionMarketFeeConfig(authority=key(1), authorized_caller=key(2), taker_fee_bps=10_000)
        assert config.taker_fee_bps == 10_000
