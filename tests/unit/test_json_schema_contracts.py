"""
Tests for JSON Schema Contract Validators

Комплексное тестирование JSON Schema контрактов snapshot-записей:
- Валидность самих схем
- Валидация snapshot, экспортированных из моделей
- Детекция нарушений required полей
- Детекция нарушений типов и constraints (min/max/pattern)
- Запрет лишних полей
"""

import json
from pathlib import Path

import pytest
from jsonschema import ValidationError

from fund_engine.core.contracts import (
    FundValidator,
    InsuranceFundConfigValidator,
    LPPositionValidator,
    PMFeeConfigValidator,
    ReferralBindingValidator,
    SchemaLoader,
    export_snapshot,
    validate_fund,
    validate_insurance_fund_config,
    validate_lp_position,
    validate_pm_fee_config,
    validate_referral_binding,
)
from fund_engine.core.domain import (
    Fund,
    FundConfig,
    InsuranceFundConfig,
    LPPosition,
    PredictionMarketFeeConfig,
    ReferralBinding,
)


def key(n: int) -> str:
    return f"{n:064x}"


# =============================================================================
# FIXTURES - VALID DATA SAMPLES
# =============================================================================


@pytest.fixture
def valid_fund():
    """Валидный snapshot фонда."""
    fund = Fund(address=key(1), manager=key(2), name="Alpha", fund_vault=key(3), share_mint=key(4))
    return fund.model_dump(mode="json")


@pytest.fixture
def valid_lp_position():
    return LPPosition(fund=key(1), investor=key(5), shares=10).model_dump(mode="json")


@pytest.fixture
def valid_insurance_fund_config():
    return InsuranceFundConfig(fund=key(1), authorized_caller=key(9)).model_dump(mode="json")


@pytest.fixture
def valid_referral_binding():
    return ReferralBinding(
        referee=key(6), referrer=key(7), referral_code="ALPHA", bound_at=1_700_000_000
    ).model_dump(mode="json")


@pytest.fixture
def valid_pm_fee_config():
    return PredictionMarketFeeConfig(authority=key(1), authorized_caller=key(2)).model_dump(mode="json")


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class TestSchemaLoader:
    def test_all_schemas_load(self):
        """Все схемы пакета проходят meta-validation."""
        loader = SchemaLoader()
        for name in ("fund", "lp_position", "insurance_fund_config", "referral_binding", "pm_fee_config"):
            schema = loader.load_schema(name)
            assert schema["$schema"] == "https://json-schema.org/draft/2020-12/schema"
            assert schema["additionalProperties"] is False

    def test_schema_cached(self):
        """Повторная загрузка возвращает кэшированный объект."""
        loader = SchemaLoader()
        assert loader.load_schema("fund") is loader.load_schema("fund")

    def test_missing_schema(self):
        """Отсутствующая схема → FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            SchemaLoader().load_schema("no_such_schema")

    def test_missing_directory(self, tmp_path: Path):
        """Несуществующая директория схем → RuntimeError."""
        with pytest.raises(RuntimeError):
            SchemaLoader(tmp_path / "absent")

    def test_invalid_schema_rejected(self, tmp_path: Path):
        """Схема, не проходящая meta-validation → ValueError."""
        (tmp_path / "broken.json").write_text(json.dumps({"type": 42}), encoding="utf-8")
        with pytest.raises(ValueError):
            SchemaLoader(tmp_path).load_schema("broken")


# =============================================================================
# VALID SNAPSHOTS
# =============================================================================


class TestValidSnapshots:
    def test_fund(self, valid_fund):
        """Snapshot фонда валиден."""
        validate_fund(valid_fund)
        assert FundValidator().is_valid(valid_fund)

    def test_lp_position(self, valid_lp_position):
        validate_lp_position(valid_lp_position)

    def test_insurance_fund_config(self, valid_insurance_fund_config):
        validate_insurance_fund_config(valid_insurance_fund_config)

    def test_referral_binding(self, valid_referral_binding):
        validate_referral_binding(valid_referral_binding)

    def test_pm_fee_config(self, valid_pm_fee_config):
        validate_pm_fee_config(valid_pm_fee_config)

    def test_export_snapshot(self):
        """export_snapshot возвращает JSON-совместимый dict."""
        position = LPPosition(fund=key(1), investor=key(5), shares=2**63)
        data = export_snapshot(position)
        assert data["shares"] == 2**63
        assert json.loads(json.dumps(data)) == data

    def test_export_without_contract(self):
        """Записи без контракта не экспортируются."""
        program = FundConfig(authority=key(1), vault_program=key(2), ledger_program=key(3))
        with pytest.raises(KeyError):
            export_snapshot(program)


# =============================================================================
# VIOLATIONS
# =============================================================================


class TestViolations:
    def test_missing_required_field(self, valid_fund):
        """Отсутствие required поля."""
        del valid_fund["manager"]
        with pytest.raises(ValidationError, match="manager"):
            validate_fund(valid_fund)

    def test_nested_type_violation(self, valid_fund):
        """Неверный тип во вложенной статистике."""
        valid_fund["stats"]["total_shares"] = "many"
        with pytest.raises(ValidationError):
            validate_fund(valid_fund)

    def test_negative_shares(self, valid_lp_position):
        """Доли не могут быть отрицательными."""
        valid_lp_position["shares"] = -1
        assert not LPPositionValidator().is_valid(valid_lp_position)

    def test_pubkey_pattern(self, valid_insurance_fund_config):
        """Ключ должен быть 64 hex символа."""
        valid_insurance_fund_config["authorized_caller"] = "not-a-key"
        with pytest.raises(ValidationError):
            InsuranceFundConfigValidator().validate(valid_insurance_fund_config)

    def test_referral_code_pattern(self, valid_referral_binding):
        """Код ссылки проверяется тем же шаблоном, что и в модели."""
        valid_referral_binding["referral_code"] = "has space"
        assert not ReferralBindingValidator().is_valid(valid_referral_binding)

    def test_fee_bps_upper_bound(self, valid_pm_fee_config):
        """Ставка PM не больше 10000 bps."""
        valid_pm_fee_config["taker_fee_bps"] = 10_001
        with pytest.raises(ValidationError):
            validate_pm_fee_config(valid_pm_fee_config)

    def test_additional_properties_forbidden(self, valid_lp_position):
        """Лишние поля запрещены."""
        valid_lp_position["comment"] = "extra"
        with pytest.raises(ValidationError):
            validate_lp_position(valid_lp_position)

    def test_iter_errors_collects_all(self, valid_pm_fee_config):
        """iter_errors находит все нарушения сразу."""
        valid_pm_fee_config["taker_fee_bps"] = -1
        valid_pm_fee_config["is_paused"] = "no"
        errors = list(PMFeeConfigValidator().iter_errors(valid_pm_fee_config))
        assert len(errors) == 2
