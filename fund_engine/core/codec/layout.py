"""
Record Layout — фиксированный бинарный формат хранения записей

Каждая запись на диске:
- 8 байт: тег типа (u64 little-endian, ASCII-имя записи, например b"FUND_FUN")
- поля в порядке объявления, little-endian, фиксированной ширины
- зарезервированный блок нулей для будущих полей без сдвига существующих

Кодирование полей:
- bps: u16; денежные суммы и timestamps: i64; счётчики: u64/u32
- bool: 1 байт; публичный ключ: 32 байта
- строки: фиксированная ширина, дополнение NUL
- необязательный u16: 1 байт флага + u16
- ограниченный список: u8 счётчик + capacity слотов

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Размер записи постоянен для данного типа
2. Тег проверяется при декодировании (InvalidAccountData при несовпадении)
3. Содержимое reserved блока при декодировании игнорируется (forward compatibility)
"""

import struct
from dataclasses import dataclass
from typing import Any, Dict, Final, List, Sequence, Tuple, Type

from pydantic import BaseModel, ValidationError

from fund_engine.core.domain.fund import MAX_FUND_NAME_LEN, FeeConfig, Fund, FundStats, LPPosition
from fund_engine.core.domain.insurance import InsuranceFundConfig
from fund_engine.core.domain.prediction_market import PredictionMarketFeeConfig
from fund_engine.core.domain.program import MAX_RELAYERS, FundConfig, RelayerEntry
from fund_engine.core.domain.referral import (
    MAX_REFERRAL_CODE_LEN,
    VIP_TIER_COUNT,
    ReferralBinding,
    ReferralConfig,
    ReferralLink,
)
from fund_engine.core.domain.units import PUBKEY_SIZE, pubkey_from_bytes, pubkey_to_bytes
from fund_engine.core.errors import InvalidAccountData

DISCRIMINATOR_FMT: Final[str] = "<Q"
DISCRIMINATOR_SIZE: Final[int] = struct.calcsize(DISCRIMINATOR_FMT)

# Теги типов записей
FUND_CONFIG_DISCRIMINATOR: Final[int] = 0x46554E445F434F4E  # FUND_CON
FUND_DISCRIMINATOR: Final[int] = 0x46554E445F46554E  # FUND_FUN
LP_POSITION_DISCRIMINATOR: Final[int] = 0x4C505F504F534954  # LP_POSIT
INSURANCE_FUND_CONFIG_DISCRIMINATOR: Final[int] = 0x494E5355525F4346  # INSUR_CF
REFERRAL_CONFIG_DISCRIMINATOR: Final[int] = 0x5245465F434F4E46  # REF_CONF
REFERRAL_LINK_DISCRIMINATOR: Final[int] = 0x5245465F4C494E4B  # REF_LINK
REFERRAL_BINDING_DISCRIMINATOR: Final[int] = 0x5245465F42494E44  # REF_BIND
PM_FEE_CONFIG_DISCRIMINATOR: Final[int] = 0x504D5F4645454346  # PM_FEECF

# Размеры reserved блоков
CONFIG_RESERVED_SIZE: Final[int] = 64
RECORD_RESERVED_SIZE: Final[int] = 32


# =============================================================================
# FIELD CODECS
# =============================================================================


@dataclass(frozen=True)
class Scalar:
    """Скаляр фиксированной ширины (struct format char)."""

    fmt: str

    @property
    def size(self) -> int:
        return struct.calcsize("<" + self.fmt)

    def pack(self, value: Any) -> bytes:
        return struct.pack("<" + self.fmt, value)

    def unpack(self, buf: bytes, offset: int) -> Tuple[Any, int]:
        (value,) = struct.unpack_from("<" + self.fmt, buf, offset)
        return value, offset + self.size


@dataclass(frozen=True)
class PubkeyField:
    size: int = PUBKEY_SIZE

    def pack(self, value: str) -> bytes:
        return pubkey_to_bytes(value)

    def unpack(self, buf: bytes, offset: int) -> Tuple[str, int]:
        return pubkey_from_bytes(bytes(buf[offset : offset + self.size])), offset + self.size


@dataclass(frozen=True)
class FixedString:
    """UTF-8 строка фиксированной ширины, дополненная NUL."""

    size: int

    def pack(self, value: str) -> bytes:
        raw = value.encode("utf-8")
        if len(raw) > self.size:
            raise ValueError(f"String {value!r} exceeds {self.size} bytes")
        return raw.ljust(self.size, b"\x00")

    def unpack(self, buf: bytes, offset: int) -> Tuple[str, int]:
        raw = bytes(buf[offset : offset + self.size]).rstrip(b"\x00")
        return raw.decode("utf-8"), offset + self.size


@dataclass(frozen=True)
class OptionalU16:
    """Флаг присутствия (1 байт) + u16. None кодируется как (0, 0)."""

    size: int = struct.calcsize("<?H")

    def pack(self, value: int | None) -> bytes:
        if value is None:
            return struct.pack("<?H", False, 0)
        return struct.pack("<?H", True, value)

    def unpack(self, buf: bytes, offset: int) -> Tuple[int | None, int]:
        present, value = struct.unpack_from("<?H", buf, offset)
        return (value if present else None), offset + self.size


@dataclass(frozen=True)
class FixedArray:
    item: Scalar
    count: int

    @property
    def size(self) -> int:
        return self.item.size * self.count

    def pack(self, value: Sequence[Any]) -> bytes:
        if len(value) != self.count:
            raise ValueError(f"Expected {self.count} items, got {len(value)}")
        return b"".join(self.item.pack(v) for v in value)

    def unpack(self, buf: bytes, offset: int) -> Tuple[Tuple[Any, ...], int]:
        items = []
        for _ in range(self.count):
            value, offset = self.item.unpack(buf, offset)
            items.append(value)
        return tuple(items), offset


@dataclass(frozen=True)
class Struct:
    """Вложенная модель: поля подряд, без тега и reserved блока."""

    model: Type[BaseModel]
    fields: Tuple[Tuple[str, Any], ...]

    @property
    def size(self) -> int:
        return sum(codec.size for _, codec in self.fields)

    def pack(self, value: BaseModel) -> bytes:
        return b"".join(codec.pack(getattr(value, name)) for name, codec in self.fields)

    def unpack_values(self, buf: bytes, offset: int) -> Tuple[Dict[str, Any], int]:
        values: Dict[str, Any] = {}
        for name, codec in self.fields:
            values[name], offset = codec.unpack(buf, offset)
        return values, offset

    def unpack(self, buf: bytes, offset: int) -> Tuple[BaseModel, int]:
        values, offset = self.unpack_values(buf, offset)
        return self.model(**values), offset


@dataclass(frozen=True)
class BoundedList:
    """Коллекция фиксированной ёмкости: u8 счётчик + capacity слотов."""

    item: Struct
    capacity: int

    @property
    def size(self) -> int:
        return 1 + self.item.size * self.capacity

    def pack(self, value: Sequence[BaseModel]) -> bytes:
        if len(value) > self.capacity:
            raise ValueError(f"Bounded list holds at most {self.capacity} items, got {len(value)}")
        empty_slot = b"\x00" * self.item.size
        slots = [self.item.pack(v) for v in value]
        slots.extend(empty_slot for _ in range(self.capacity - len(value)))
        return struct.pack("<B", len(value)) + b"".join(slots)

    def unpack(self, buf: bytes, offset: int) -> Tuple[Tuple[BaseModel, ...], int]:
        (count,) = struct.unpack_from("<B", buf, offset)
        if count > self.capacity:
            raise InvalidAccountData(f"Bounded list count {count} exceeds capacity {self.capacity}")
        offset += 1
        items = []
        for index in range(self.capacity):
            if index < count:
                item, offset = self.item.unpack(buf, offset)
                items.append(item)
            else:
                offset += self.item.size
        return tuple(items), offset


U8 = Scalar("B")
U16 = Scalar("H")
U32 = Scalar("I")
U64 = Scalar("Q")
I64 = Scalar("q")
BOOL = Scalar("?")
PUBKEY = PubkeyField()


# =============================================================================
# RECORD LAYOUT
# =============================================================================


@dataclass(frozen=True)
class RecordLayout:
    """
    Версионируемая схема записи: тег + поля + reserved блок.

    Attributes:
        name: ASCII-имя тега (для диагностики)
        discriminator: u64 тег типа
        body: Описание полей модели
        reserved: Размер зарезервированного блока (байт)
    """

    name: str
    discriminator: int
    body: Struct
    reserved: int

    @property
    def model(self) -> Type[BaseModel]:
        return self.body.model

    @property
    def size(self) -> int:
        return DISCRIMINATOR_SIZE + self.body.size + self.reserved

    def encode(self, record: BaseModel) -> bytes:
        """
        Сериализация записи.

        Raises:
            TypeError: Если record не является моделью этого layout
        """
        if not isinstance(record, self.model):
            raise TypeError(f"{self.name} layout expects {self.model.__name__}, got {type(record).__name__}")

        return struct.pack(DISCRIMINATOR_FMT, self.discriminator) + self.body.pack(record) + b"\x00" * self.reserved

    def decode(self, data: bytes) -> BaseModel:
        """
        Десериализация записи.

        Raises:
            InvalidAccountData: Неверный размер, тег или невалидные значения полей
        """
        if len(data) != self.size:
            raise InvalidAccountData(f"{self.name}: expected {self.size} bytes, got {len(data)}")

        (tag,) = struct.unpack_from(DISCRIMINATOR_FMT, data, 0)
        if tag != self.discriminator:
            raise InvalidAccountData(f"{self.name}: unexpected discriminator 0x{tag:016X}")

        try:
            values, _ = self.body.unpack_values(data, DISCRIMINATOR_SIZE)
            return self.model(**values)
        except (ValidationError, UnicodeDecodeError, ValueError) as e:
            raise InvalidAccountData(f"{self.name}: {e}") from e


# =============================================================================
# LAYOUTS
# =============================================================================

RELAYER_ENTRY = Struct(
    RelayerEntry,
    (
        ("relayer", PUBKEY),
        ("is_active", BOOL),
        ("single_tx_limit_e6", I64),
        ("daily_limit_e6", I64),
        ("daily_used_e6", I64),
        ("last_reset_ts", I64),
    ),
)

FEE_CONFIG = Struct(
    FeeConfig,
    (
        ("management_fee_bps", U16),
        ("performance_fee_bps", U16),
        ("use_high_water_mark", BOOL),
        ("fee_collection_interval", I64),
    ),
)

FUND_STATS = Struct(
    FundStats,
    (
        ("total_deposits_e6", I64),
        ("total_withdrawals_e6", I64),
        ("total_realized_pnl_e6", I64),
        ("total_management_fee_e6", I64),
        ("total_performance_fee_e6", I64),
        ("current_nav_e6", I64),
        ("high_water_mark_e6", I64),
        ("total_shares", U64),
        ("last_fee_collection_ts", I64),
        ("lp_count", U32),
    ),
)

FUND_CONFIG_LAYOUT = RecordLayout(
    name="FUND_CON",
    discriminator=FUND_CONFIG_DISCRIMINATOR,
    body=Struct(
        FundConfig,
        (
            ("authority", PUBKEY),
            ("vault_program", PUBKEY),
            ("ledger_program", PUBKEY),
            ("total_funds", U64),
            ("active_funds", U64),
            ("is_paused", BOOL),
            ("relayers", BoundedList(RELAYER_ENTRY, MAX_RELAYERS)),
        ),
    ),
    reserved=CONFIG_RESERVED_SIZE,
)

FUND_LAYOUT = RecordLayout(
    name="FUND_FUN",
    discriminator=FUND_DISCRIMINATOR,
    body=Struct(
        Fund,
        (
            ("address", PUBKEY),
            ("manager", PUBKEY),
            ("name", FixedString(MAX_FUND_NAME_LEN)),
            ("fund_vault", PUBKEY),
            ("share_mint", PUBKEY),
            ("fund_index", U64),
            ("fee_config", FEE_CONFIG),
            ("stats", FUND_STATS),
            ("is_open", BOOL),
            ("is_paused", BOOL),
            ("is_closed", BOOL),
            ("created_at", I64),
            ("last_update_ts", I64),
            # Первый байт бывшего резерва: у старых записей 0 (не буфер)
            ("is_insurance_fund", BOOL),
        ),
    ),
    reserved=CONFIG_RESERVED_SIZE - 1,
)

LP_POSITION_LAYOUT = RecordLayout(
    name="LP_POSIT",
    discriminator=LP_POSITION_DISCRIMINATOR,
    body=Struct(
        LPPosition,
        (
            ("fund", PUBKEY),
            ("investor", PUBKEY),
            ("shares", U64),
            ("deposit_nav_e6", I64),
            ("total_deposited_e6", I64),
            ("total_withdrawn_e6", I64),
            ("deposited_at", I64),
            ("last_deposit_ts", I64),
            ("last_update_ts", I64),
        ),
    ),
    reserved=RECORD_RESERVED_SIZE,
)

INSURANCE_FUND_CONFIG_LAYOUT = RecordLayout(
    name="INSUR_CF",
    discriminator=INSURANCE_FUND_CONFIG_DISCRIMINATOR,
    body=Struct(
        InsuranceFundConfig,
        (
            ("fund", PUBKEY),
            ("total_liquidation_income_e6", I64),
            ("total_adl_profit_e6", I64),
            ("total_shortfall_payout_e6", I64),
            ("adl_trigger_threshold_e6", I64),
            ("adl_trigger_count", U64),
            ("is_adl_in_progress", BOOL),
            ("balance_1h_ago_e6", I64),
            ("last_snapshot_ts", I64),
            ("withdrawal_delay_secs", I64),
            ("authorized_caller", PUBKEY),
            ("last_update_ts", I64),
        ),
    ),
    reserved=CONFIG_RESERVED_SIZE,
)

REFERRAL_CONFIG_LAYOUT = RecordLayout(
    name="REF_CONF",
    discriminator=REFERRAL_CONFIG_DISCRIMINATOR,
    body=Struct(
        ReferralConfig,
        (
            ("authority", PUBKEY),
            ("authorized_caller", PUBKEY),
            ("referrer_share_bps", U16),
            ("referee_discount_bps", U16),
            ("referrer_vip_bonus_bps", FixedArray(U16, VIP_TIER_COUNT)),
            ("referee_vip_bonus_bps", FixedArray(U16, VIP_TIER_COUNT)),
            ("min_settlement_amount_e6", I64),
            ("reward_validity_secs", I64),
            ("total_referrers", U64),
            ("total_referees", U64),
            ("total_volume_e6", I64),
            ("total_rewards_e6", I64),
            ("total_discounts_e6", I64),
            ("is_paused", BOOL),
            ("last_update_ts", I64),
        ),
    ),
    reserved=CONFIG_RESERVED_SIZE,
)

REFERRAL_LINK_LAYOUT = RecordLayout(
    name="REF_LINK",
    discriminator=REFERRAL_LINK_DISCRIMINATOR,
    body=Struct(
        ReferralLink,
        (
            ("referrer", PUBKEY),
            ("code", FixedString(MAX_REFERRAL_CODE_LEN)),
            ("is_active", BOOL),
            ("custom_referrer_share_bps", OptionalU16()),
            ("custom_referee_discount_bps", OptionalU16()),
            ("referred_count", U64),
            ("total_volume_e6", I64),
            ("total_rewards_earned_e6", I64),
            ("total_discounts_given_e6", I64),
            ("created_at", I64),
            ("last_update_ts", I64),
        ),
    ),
    reserved=RECORD_RESERVED_SIZE,
)

REFERRAL_BINDING_LAYOUT = RecordLayout(
    name="REF_BIND",
    discriminator=REFERRAL_BINDING_DISCRIMINATOR,
    body=Struct(
        ReferralBinding,
        (
            ("referee", PUBKEY),
            ("referrer", PUBKEY),
            ("referral_code", FixedString(MAX_REFERRAL_CODE_LEN)),
            ("bound_at", I64),
            ("referee_volume_e6", I64),
            ("referrer_rewards_e6", I64),
            ("referee_discounts_e6", I64),
            ("trade_count", U64),
            ("last_trade_ts", I64),
        ),
    ),
    reserved=RECORD_RESERVED_SIZE,
)

PM_FEE_CONFIG_LAYOUT = RecordLayout(
    name="PM_FEECF",
    discriminator=PM_FEE_CONFIG_DISCRIMINATOR,
    body=Struct(
        PredictionMarketFeeConfig,
        (
            ("authority", PUBKEY),
            ("authorized_caller", PUBKEY),
            ("minting_fee_bps", U16),
            ("redemption_fee_bps", U16),
            ("taker_fee_bps", U16),
            ("maker_fee_bps", U16),
            ("settlement_fee_bps", U16),
            ("protocol_share_bps", U16),
            ("maker_reward_share_bps", U16),
            ("creator_share_bps", U16),
            ("total_minting_fee_e6", I64),
            ("total_redemption_fee_e6", I64),
            ("total_trading_fee_e6", I64),
            ("total_settlement_fee_e6", I64),
            ("total_protocol_income_e6", I64),
            ("maker_reward_pool_e6", I64),
            ("creator_reward_pool_e6", I64),
            ("total_maker_rewards_paid_e6", I64),
            ("total_creator_rewards_paid_e6", I64),
            ("is_paused", BOOL),
            ("last_update_ts", I64),
        ),
    ),
    reserved=CONFIG_RESERVED_SIZE,
)

ALL_LAYOUTS: Final[List[RecordLayout]] = [
    FUND_CONFIG_LAYOUT,
    FUND_LAYOUT,
    LP_POSITION_LAYOUT,
    INSURANCE_FUND_CONFIG_LAYOUT,
    REFERRAL_CONFIG_LAYOUT,
    REFERRAL_LINK_LAYOUT,
    REFERRAL_BINDING_LAYOUT,
    PM_FEE_CONFIG_LAYOUT,
]

_LAYOUTS_BY_MODEL: Dict[Type[BaseModel], RecordLayout] = {layout.model: layout for layout in ALL_LAYOUTS}
_LAYOUTS_BY_TAG: Dict[int, RecordLayout] = {layout.discriminator: layout for layout in ALL_LAYOUTS}


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def layout_for(model: Type[BaseModel]) -> RecordLayout:
    """
    Layout для класса записи.

    Raises:
        KeyError: Если для класса нет layout
    """
    return _LAYOUTS_BY_MODEL[model]


def encode_record(record: BaseModel) -> bytes:
    """Сериализация любой поддерживаемой записи в фиксированный бинарный формат."""
    return layout_for(type(record)).encode(record)


def decode_record(data: bytes) -> BaseModel:
    """
    Десериализация записи по её тегу.

    Raises:
        InvalidAccountData: Неизвестный тег или повреждённые данные
    """
    if len(data) < DISCRIMINATOR_SIZE:
        raise InvalidAccountData(f"Record too short: {len(data)} bytes")

    (tag,) = struct.unpack_from(DISCRIMINATOR_FMT, data, 0)
    layout = _LAYOUTS_BY_TAG.get(tag)
    if layout is None:
        raise InvalidAccountData(f"Unknown discriminator 0x{tag:016X}")
    return layout.decode(data)
