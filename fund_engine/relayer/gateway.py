"""
Relayer Gateway — операции инвестора, выполняемые через relayer

Каждая операция сначала проверяет, что relayer активен, затем выполняет
операцию движка и учитывает её сумму в лимитах relayer. Исключение на
любом шаге означает, что ни реестр, ни записи не изменились.
"""

from dataclasses import dataclass
from typing import Optional

from fund_engine.core.domain.fund import Fund, LPPosition
from fund_engine.core.domain.insurance import InsuranceFundConfig
from fund_engine.core.domain.program import FundConfig
from fund_engine.core.domain.referral import ReferralBinding, ReferralConfig, ReferralLink
from fund_engine.insurance.risk_engine import InsuranceRiskEngine
from fund_engine.lp.lifecycle import DepositResult, LPLifecycle, RedemptionResult
from fund_engine.referral.engine import BindingCreation, ReferralEngine
from fund_engine.relayer.registry import RelayerRegistry


@dataclass(frozen=True)
class RelayedDeposit:
    program: FundConfig
    deposit: DepositResult


@dataclass(frozen=True)
class RelayedRedemption:
    program: FundConfig
    redemption: RedemptionResult


@dataclass(frozen=True)
class RelayedBinding:
    program: FundConfig
    binding: BindingCreation


class RelayerGateway:
    """Proxy-операции с проверкой allow-list и лимитов relayer."""

    def __init__(
        self,
        registry: Optional[RelayerRegistry] = None,
        lifecycle: Optional[LPLifecycle] = None,
        insurance: Optional[InsuranceRiskEngine] = None,
        referral: Optional[ReferralEngine] = None,
    ):
        self.registry = registry or RelayerRegistry()
        self.lifecycle = lifecycle or LPLifecycle()
        self.insurance = insurance or InsuranceRiskEngine(lifecycle=self.lifecycle)
        self.referral = referral or ReferralEngine()

    def relayer_deposit_to_fund(
        self,
        program: FundConfig,
        relayer: str,
        fund: Fund,
        position: Optional[LPPosition],
        investor: str,
        amount_e6: int,
        now: int,
    ) -> RelayedDeposit:
        """Депозит инвестора через relayer. Лимит проверяется по сумме депозита."""
        self.registry.require_active(program, relayer)
        deposit = self.lifecycle.deposit(fund, position, investor, amount_e6, now)
        program = self.registry.authorize_relayer(program, relayer, amount_e6, now)
        return RelayedDeposit(program=program, deposit=deposit)

    def relayer_redeem_from_fund(
        self,
        program: FundConfig,
        relayer: str,
        fund: Fund,
        position: LPPosition,
        investor: str,
        shares: int,
        now: int,
        insurance: Optional[InsuranceFundConfig] = None,
        vault_balance_e6: Optional[int] = None,
    ) -> RelayedRedemption:
        """Погашение через relayer. Лимит проверяется по сумме выплаты.

        Буфер insurance fund погашается только вместе с его конфигурацией
        (ADL флаг и задержка вывода).
        """
        self.registry.require_active(program, relayer)
        redemption = self.lifecycle.redeem(
            fund, position, investor, shares, now, insurance=insurance, vault_balance_e6=vault_balance_e6
        )
        program = self.registry.authorize_relayer(program, relayer, redemption.payout_e6, now)
        return RelayedRedemption(program=program, redemption=redemption)

    def relayer_redeem_from_insurance_fund(
        self,
        program: FundConfig,
        relayer: str,
        config: InsuranceFundConfig,
        fund: Fund,
        position: LPPosition,
        investor: str,
        shares: int,
        balance_e6: int,
        now: int,
    ) -> RelayedRedemption:
        self.registry.require_active(program, relayer)
        redemption = self.insurance.redeem_from_insurance_fund(
            config, fund, position, investor, shares, balance_e6, now
        )
        program = self.registry.authorize_relayer(program, relayer, redemption.payout_e6, now)
        return RelayedRedemption(program=program, redemption=redemption)

    def relayer_bind_referral(
        self,
        program: FundConfig,
        relayer: str,
        config: ReferralConfig,
        link: ReferralLink,
        referee: str,
        existing_binding: Optional[ReferralBinding],
        now: int,
    ) -> RelayedBinding:
        self.registry.require_active(program, relayer)
        binding = self.referral.bind_referral(config, link, referee, existing_binding, now)
        program = self.registry.authorize_relayer(program, relayer, 0, now)
        return RelayedBinding(program=program, binding=binding)
