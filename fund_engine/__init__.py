"""
fund_engine — детерминированное финансовое ядро fund-management ledger.

Пакеты:
- core/               : fixed-point математика, ошибки, domain records, codec, контракты
- nav/                : NAV и начисление management/performance fee
- lp/                 : жизненный цикл фондов и LP позиций
- insurance/          : insurance fund и ADL risk engine
- referral/           : реферальные ставки и распределение комиссий
- prediction_market/  : распределение комиссий prediction market
- admin/              : реестр программы (FundConfig)
- relayer/            : proxy callers (relayers) и их лимиты
"""

__version__ = "0.3.0"
