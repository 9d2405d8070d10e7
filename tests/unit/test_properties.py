"""
Property-based тесты арифметики распределения (hypothesis)

Инварианты:
1. Распределение referral комиссии не теряет и не создаёт средств
2. Распределение PM комиссии не теряет и не создаёт средств
3. Округление выпуска и погашения долей всегда в пользу фонда
4. Bankruptcy имеет наивысший приоритет среди причин ADL
5. Насыщающее сложение не выходит за границы типа
6. После любой последовательности операций NAV × shares восстанавливает стоимость фонда
7. High-water mark не убывает
8. Депозит с немедленным погашением не возвращает больше внесённого
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from fund_engine.admin import initialize_program
from fund_engine.core.domain import ADLTriggerReason, InsuranceFundConfig, PredictionMarketFeeConfig
from fund_engine.core.errors import NoFeesToCollect
from fund_engine.core.math import E6, I64_MAX, I64_MIN, saturating_add
from fund_engine.insurance import InsuranceRiskEngine
from fund_engine.lp import LPLifecycle
from fund_engine.nav import calculate_redemption_value, calculate_shares_to_mint, total_value_e6
from fund_engine.prediction_market import split_fee
from fund_engine.referral import EffectiveRates, split_referral_fee


KEY = "ab" * 32

bps = st.integers(min_value=0, max_value=10_000)
amounts = st.integers(min_value=0, max_value=10**15)


@given(
    fee=amounts,
    discount_bps=bps,
    share_bps=bps,
    min_settlement=st.integers(min_value=0, max_value=10**9),
    reward_active=st.booleans(),
)
def test_referral_split_conserves_fee(fee, discount_bps, share_bps, min_settlement, reward_active):
    rates = EffectiveRates(tier=0, referee_discount_bps=discount_bps, referrer_share_bps=share_bps)
    split = split_referral_fee(fee, rates, min_settlement, reward_active)

    assert split.discount_e6 + split.referrer_reward_e6 + split.platform_income_e6 == fee
    assert min(split.discount_e6, split.referrer_reward_e6, split.platform_income_e6) >= 0
    if not reward_active:
        assert split.referrer_reward_e6 == 0


@given(fee=amounts, protocol=bps, data=st.data())
def test_pm_split_conserves_fee(fee, protocol, data):
    maker = data.draw(st.integers(min_value=0, max_value=10_000 - protocol))
    config = PredictionMarketFeeConfig(
        authority=KEY,
        authorized_caller=KEY,
        protocol_share_bps=protocol,
        maker_reward_share_bps=maker,
        creator_share_bps=10_000 - protocol - maker,
    )
    split = split_fee(config, fee)

    assert split.protocol_e6 + split.maker_reward_e6 + split.creator_e6 == fee
    assert split.creator_e6 >= 0


@given(
    amount=st.integers(min_value=1, max_value=10**15),
    nav=st.integers(min_value=1_000, max_value=10**9),
)
def test_share_rounding_favors_fund(amount, nav):
    """Погашение только что выпущенных долей не возвращает больше депозита."""
    if amount * E6 < nav:
        return
    shares = calculate_shares_to_mint(amount, nav)
    assert calculate_redemption_value(shares, nav) <= amount


@given(
    balance=amounts,
    shortfall=st.integers(min_value=1, max_value=10**15),
    threshold=amounts,
    balance_1h_ago=amounts,
)
def test_bankruptcy_takes_priority(balance, shortfall, threshold, balance_1h_ago):
    config = InsuranceFundConfig(
        fund=KEY,
        authorized_caller=KEY,
        adl_trigger_threshold_e6=threshold,
        balance_1h_ago_e6=balance_1h_ago,
    )
    reason = InsuranceRiskEngine().should_trigger_adl(config, balance, shortfall)

    if shortfall > balance:
        assert reason == ADLTriggerReason.BANKRUPTCY
    else:
        assert reason != ADLTriggerReason.BANKRUPTCY
        if balance < threshold:
            assert reason == ADLTriggerReason.INSUFFICIENT_BALANCE


@given(a=st.integers(min_value=I64_MIN, max_value=I64_MAX), b=st.integers(min_value=I64_MIN, max_value=I64_MAX))
def test_saturating_add_stays_in_range(a, b):
    result = saturating_add(a, b)
    assert I64_MIN <= result <= I64_MAX
    if I64_MIN <= a + b <= I64_MAX:
        assert result == a + b


# =============================================================================
# Последовательности операций LP Lifecycle
# =============================================================================

MANAGER = "01" * 32
LEDGER = "02" * 32
INVESTOR = "03" * 32
T0 = 1_700_000_000

operations = st.lists(
    st.one_of(
        st.tuples(st.just("deposit"), st.integers(min_value=1_000_000, max_value=10**12)),
        st.tuples(st.just("redeem"), st.integers(min_value=1, max_value=10_000)),
        st.tuples(st.just("pnl"), st.integers(min_value=-3_000, max_value=5_000)),
        st.tuples(st.just("fees"), st.integers(min_value=1, max_value=30 * 86_400)),
    ),
    max_size=12,
)


def run_operations(lifecycle, ops):
    """Прогон операций над одним фондом с одним инвестором; возвращает (fund, position, hwm история)."""
    program = initialize_program(MANAGER, "04" * 32, LEDGER)
    fund = lifecycle.create_fund(
        program, MANAGER, "05" * 32, "Sequence", "06" * 32, "07" * 32, T0,
        management_fee_bps=200, performance_fee_bps=2000, fee_collection_interval=0,
    ).fund
    position = None
    now = T0
    marks = [fund.stats.high_water_mark_e6]

    for kind, value in ops:
        now += 1
        if kind == "deposit":
            result = lifecycle.deposit(fund, position, INVESTOR, value, now)
            fund, position = result.fund, result.position
        elif kind == "redeem":
            if position is None or position.shares == 0:
                continue
            shares = max(1, position.shares * value // 10_000)
            result = lifecycle.redeem(fund, position, INVESTOR, shares, now)
            fund, position = result.fund, result.position
        elif kind == "pnl":
            pnl = total_value_e6(fund.stats) * value // 10_000
            fund = lifecycle.record_pnl(program, fund, LEDGER, pnl, now)
        else:
            now += value
            try:
                fund = lifecycle.collect_fees(fund, MANAGER, now).fund
            except NoFeesToCollect:
                pass
        marks.append(fund.stats.high_water_mark_e6)

    return fund, position, marks, now


@settings(deadline=None)
@given(ops=operations)
def test_nav_reconstructs_total_value(ops):
    """Сохранённый NAV × shares отличается от стоимости фонда только на округление."""
    fund, _, _, _ = run_operations(LPLifecycle(), ops)
    stats = fund.stats
    if stats.total_shares == 0:
        return
    value = total_value_e6(stats)
    reconstructed = stats.current_nav_e6 * stats.total_shares // E6
    assert 0 <= value - reconstructed <= stats.total_shares // E6 + 1


@settings(deadline=None)
@given(ops=operations)
def test_high_water_mark_never_decreases(ops):
    _, _, marks, _ = run_operations(LPLifecycle(), ops)
    assert all(prev <= nxt for prev, nxt in zip(marks, marks[1:]))


@settings(deadline=None)
@given(ops=operations, amount=st.integers(min_value=1_000_000, max_value=10**12))
def test_deposit_then_redeem_returns_at_most_amount(ops, amount):
    """Без комиссий между операциями инвестор получает не больше внесённого.

    Остаток стоимости фонда без долей достаётся следующему депозиту.
    """
    lifecycle = LPLifecycle()
    fund, position, _, now = run_operations(lifecycle, ops)
    unowned = total_value_e6(fund.stats) if fund.stats.total_shares == 0 else 0
    deposit = lifecycle.deposit(fund, position, INVESTOR, amount, now + 1)
    redemption = lifecycle.redeem(deposit.fund, deposit.position, INVESTOR, deposit.shares_minted, now + 1)

    assert redemption.payout_e6 <= amount + unowned
    assert amount - redemption.payout_e6 <= deposit.nav_e6 // E6 + 1
