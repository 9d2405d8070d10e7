"""
JSON Schema Contract Validators

Модуль для валидации JSON snapshot-записей, которые ядро отдаёт внешним
потребителям (индексатор, отчётность), согласно формальным JSON Schema контрактам.
Использует библиотеку jsonschema для проверки соответствия данных схемам.

Схемы (fund_engine/core/contracts/schema/):
- fund.json
- lp_position.json
- insurance_fund_config.json
- referral_binding.json
- pm_fee_config.json
"""

import json
from pathlib import Path
from typing import Any, Dict, Type

import jsonschema
from jsonschema import Draft202012Validator
from pydantic import BaseModel

from fund_engine.core.domain.fund import Fund, LPPosition
from fund_engine.core.domain.insurance import InsuranceFundConfig
from fund_engine.core.domain.prediction_market import PredictionMarketFeeConfig
from fund_engine.core.domain.referral import ReferralBinding


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются внутри пакета (package data), рядом с этим модулем.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'fund')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Валидируем саму схему (meta-validation)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        """
        Итератор по всем ошибкам валидации.

        Yields:
            ValidationError объекты для каждой найденной ошибки
        """
        return self.validator.iter_errors(data)


class FundValidator(ContractValidator):
    def __init__(self):
        super().__init__("fund")


class LPPositionValidator(ContractValidator):
    def __init__(self):
        super().__init__("lp_position")


class InsuranceFundConfigValidator(ContractValidator):
    def __init__(self):
        super().__init__("insurance_fund_config")


class ReferralBindingValidator(ContractValidator):
    def __init__(self):
        super().__init__("referral_binding")


class PMFeeConfigValidator(ContractValidator):
    def __init__(self):
        super().__init__("pm_fee_config")


_VALIDATORS_BY_MODEL: Dict[Type[BaseModel], Type[ContractValidator]] = {
    Fund: FundValidator,
    LPPosition: LPPositionValidator,
    InsuranceFundConfig: InsuranceFundConfigValidator,
    ReferralBinding: ReferralBindingValidator,
    PredictionMarketFeeConfig: PMFeeConfigValidator,
}


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_fund(data: Dict[str, Any]) -> None:
    FundValidator().validate(data)


def validate_lp_position(data: Dict[str, Any]) -> None:
    LPPositionValidator().validate(data)


def validate_insurance_fund_config(data: Dict[str, Any]) -> None:
    InsuranceFundConfigValidator().validate(data)


def validate_referral_binding(data: Dict[str, Any]) -> None:
    ReferralBindingValidator().validate(data)


def validate_pm_fee_config(data: Dict[str, Any]) -> None:
    PMFeeConfigValidator().validate(data)


def export_snapshot(record: BaseModel) -> Dict[str, Any]:
    """
    Экспорт записи в JSON-совместимый dict с проверкой контракта.

    Args:
        record: Запись, для которой определён контракт

    Returns:
        Snapshot записи (model_dump в JSON режиме)

    Raises:
        KeyError: Если для типа записи нет контракта
        ValidationError: Если snapshot не соответствует схеме
    """
    validator_cls = _VALIDATORS_BY_MODEL[type(record)]
    data = record.model_dump(mode="json")
    validator_cls().validate(data)
    return data
