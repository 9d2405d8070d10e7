"""
Errors — типизированная таксономия ошибок ядра

Каждая операция движков либо возвращает новые snapshot-записи, либо поднимает
одно из исключений этого модуля. Частичных мутаций не бывает: записи frozen,
поэтому при исключении у вызывающей стороны остаются нетронутые входные данные.

Коды ошибок стабильны и совпадают с кодами, которые dispatcher отдаёт наружу
(Custom(code)). Коды 0..45 совпадают с историческими кодами ledger-программы,
коды >= 46 добавлены для referral, prediction market и relayer операций.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Код ошибки уникален в пределах реестра
2. Коды никогда не переиспользуются для другого условия
"""

from typing import ClassVar, Dict, Optional, Type


# =============================================================================
# BASE
# =============================================================================


class FundEngineError(Exception):
    """
    Базовое исключение ядра.

    Attributes:
        code: Стабильный числовой код ошибки
        message: Человекочитаемое описание
    """

    code: ClassVar[int] = -1
    default_message: ClassVar[str] = "Fund engine error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code}, message={self.message!r})"


# =============================================================================
# AUTHORIZATION
# =============================================================================


class Unauthorized(FundEngineError):
    code = 0
    default_message = "Unauthorized: caller does not own this record"


class InvalidManager(FundEngineError):
    code = 1
    default_message = "Caller is not the fund manager"


class AdminRequired(FundEngineError):
    code = 3
    default_message = "Admin required for this operation"


class UnauthorizedCaller(FundEngineError):
    code = 4
    default_message = "Unauthorized caller: must be called by authorized program"


# =============================================================================
# ACCOUNTS
# =============================================================================


class InvalidFundAccount(FundEngineError):
    code = 7
    default_message = "Invalid fund account"


class LPPositionNotFound(FundEngineError):
    code = 8
    default_message = "LP position not found"


class InvalidAccountData(FundEngineError):
    """Буфер записи не соответствует layout (тег или размер)."""

    code = 46
    default_message = "Invalid account data"


# =============================================================================
# BALANCES / AMOUNTS
# =============================================================================


class InsufficientBalance(FundEngineError):
    code = 12
    default_message = "Insufficient balance"


class InsufficientShares(FundEngineError):
    code = 13
    default_message = "Insufficient shares for redemption"


class DepositTooSmall(FundEngineError):
    code = 14
    default_message = "Deposit amount is below minimum"


class InvalidAmount(FundEngineError):
    code = 16
    default_message = "Invalid amount: must be greater than zero"


# =============================================================================
# FUND STATE
# =============================================================================


class FundNotOpen(FundEngineError):
    code = 17
    default_message = "Fund is closed for new deposits"


class FundPaused(FundEngineError):
    code = 19
    default_message = "Fund is paused"


class FundHasLPPositions(FundEngineError):
    code = 20
    default_message = "Cannot close fund while LP positions exist"


class InvalidFundName(FundEngineError):
    code = 21
    default_message = "Fund name must be 1..32 bytes"


class ProgramPaused(FundEngineError):
    code = 47
    default_message = "Program is paused"


# =============================================================================
# FEES
# =============================================================================


class InvalidFeeConfig(FundEngineError):
    code = 22
    default_message = "Invalid fee configuration"


class ManagementFeeTooHigh(InvalidFeeConfig):
    code = 23
    default_message = "Management fee exceeds maximum"


class PerformanceFeeTooHigh(InvalidFeeConfig):
    code = 24
    default_message = "Performance fee exceeds maximum"


class FeeCollectionTooEarly(FundEngineError):
    code = 25
    default_message = "Fee collection interval not reached"


class NoFeesToCollect(FundEngineError):
    code = 26
    default_message = "No fees available to collect"


class InvalidFeeConfiguration(FundEngineError):
    """Доли распределения prediction market не дают в сумме 10000 bps."""

    code = 45
    default_message = "Invalid fee configuration: distribution shares must sum to 10000 bps"


# =============================================================================
# ARITHMETIC
# =============================================================================


class Overflow(FundEngineError):
    code = 27
    default_message = "Arithmetic overflow"


class NAVCalculationError(FundEngineError):
    code = 30
    default_message = "NAV calculation error"


class ShareCalculationError(FundEngineError):
    code = 31
    default_message = "Share calculation error"


# =============================================================================
# INSURANCE FUND / ADL
# =============================================================================


class ADLRequired(FundEngineError):
    code = 37
    default_message = "Insurance fund cannot cover shortfall: ADL must be triggered first"


class ADLInProgress(FundEngineError):
    code = 38
    default_message = "ADL in progress: LP redemptions are temporarily paused"


class WithdrawalDelayNotMet(FundEngineError):
    code = 42
    default_message = "Withdrawal delay period not met"


# =============================================================================
# REFERRAL
# =============================================================================


class ReferralPaused(FundEngineError):
    code = 50
    default_message = "Referral program is paused"


class InvalidReferralCode(FundEngineError):
    code = 51
    default_message = "Invalid referral code"


class ReferralLinkAlreadyExists(FundEngineError):
    code = 52
    default_message = "Referral code is already taken"


class ReferralLinkNotActive(FundEngineError):
    code = 53
    default_message = "Referral link is not active"


class CannotReferSelf(FundEngineError):
    code = 54
    default_message = "Cannot refer yourself"


class AlreadyBound(FundEngineError):
    code = 55
    default_message = "Referee is already bound to a referrer"


class InvalidReferrerShare(FundEngineError):
    code = 56
    default_message = "Referrer share exceeds maximum"


class InvalidRefereeDiscount(FundEngineError):
    code = 57
    default_message = "Referee discount exceeds maximum"


class ReferralLinkMismatch(FundEngineError):
    code = 58
    default_message = "Referral binding does not belong to this link"


# =============================================================================
# PREDICTION MARKET
# =============================================================================


class PMFeePaused(FundEngineError):
    code = 60
    default_message = "Prediction market fees are paused"


# =============================================================================
# RELAYERS
# =============================================================================


class RelayerLimitExceeded(FundEngineError):
    code = 70
    default_message = "Relayer transaction or daily limit exceeded"


class MaxRelayersReached(FundEngineError):
    code = 71
    default_message = "Maximum number of relayers reached"


class RelayerNotFound(FundEngineError):
    code = 72
    default_message = "Relayer not found"


class RelayerAlreadyExists(FundEngineError):
    code = 73
    default_message = "Relayer already registered"


# =============================================================================
# REGISTRY
# =============================================================================


def _collect_error_classes() -> Dict[int, Type[FundEngineError]]:
    registry: Dict[int, Type[FundEngineError]] = {}
    pending = list(FundEngineError.__subclasses__())
    while pending:
        cls = pending.pop()
        pending.extend(cls.__subclasses__())
        if cls.code in registry:
            raise RuntimeError(
                f"Duplicate error code {cls.code}: {registry[cls.code].__name__} and {cls.__name__}"
            )
        registry[cls.code] = cls
    return registry


ERROR_CODES: Dict[int, Type[FundEngineError]] = _collect_error_classes()


def error_from_code(code: int, message: Optional[str] = None) -> FundEngineError:
    """
    Восстановление исключения по коду (например, из ответа dispatcher).

    Args:
        code: Числовой код ошибки
        message: Необязательное сообщение

    Returns:
        Экземпляр соответствующего исключения

    Raises:
        KeyError: Если код не зарегистрирован
    """
    return ERROR_CODES[code](message)
