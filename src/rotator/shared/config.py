from __future__ import annotations
from pydantic import BaseModel, field_validator
from typing import Literal, Optional
import os, pathlib, yaml
from dotenv import load_dotenv

DEFAULT_PAPER_URL = "https://paper-api.alpaca.markets"


class BrokerCfg(BaseModel):
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    base_url: str = DEFAULT_PAPER_URL
    paper: bool = True
    data_feed: str = "iex"
    timeout_seconds: float = 10.0
    max_retries: int = 3
    retry_delay_seconds: float = 1.0


class ScheduleCfg(BaseModel):
    run_forever: bool = False
    interval_seconds: int = 86400


class RunnerCfg(BaseModel):
    dry_run: bool = True
    max_workers: int = 4
    schedule: ScheduleCfg = ScheduleCfg()


class LedgerCfg(BaseModel):
    backend: Literal["memory", "sqlite", "mongo"] = "sqlite"
    path: str = "data/ledger.sqlite"
    mongo_uri: Optional[str] = None
    mongo_db: str = "rotator"


class TelemetryCfg(BaseModel):
    console_enabled: bool = True
    console_channels: list[str] = ["ops"]
    console_min_level: str = "INFO"
    journal_enabled: bool = False
    journal_path: str = "data/journal.sqlite"
    journal_channels: list[str] = ["ops", "audit"]
    otel_enabled: bool = False
    otel_console_export: bool = False


class SignalSourceCfg(BaseModel):
    id: str
    name: str = ""
    kind: Literal["api", "scraper", "builtin"] = "api"
    url: Optional[str] = None
    json_path: Optional[str] = None
    regex: Optional[str] = None
    builtin: Optional[str] = None
    headers: dict[str, str] = {}


class SyntheticIndexCfg(BaseModel):
    id: str
    name: str = ""
    components: list[str] = []
    weights: Optional[list[float]] = None


class UserCfg(BaseModel):
    id: str
    name: str = ""
    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    base_url: Optional[str] = None
    paper: bool = True


class UniverseCfg(BaseModel):
    type: Literal["predefined", "custom", "synthetic"] = "predefined"
    predefined_list: Optional[str] = None
    custom_symbols: list[str] = []
    synthetic_index_id: Optional[str] = None


class SignalConditionCfg(BaseModel):
    source_id: str
    type: Literal["gate", "position_modifier"]
    operator: Literal["gt", "gte", "lt", "lte", "eq", "neq"]
    threshold: float
    multiplier: float = 1.0
    action: Optional[Literal["skip_trading", "allow_trading"]] = None

    @field_validator("type", mode="before")
    @classmethod
    def _legacy_gate(cls, v):
        return "gate" if v == "conditional_gate" else v


class StrategyParamsCfg(BaseModel):
    lookback_days: int = 60
    ranking_metric: str = "momentum_20d"
    ranking_factors: dict[str, float] = {}    # factor -> weight, overrides ranking_metric
    long_n: int = 5
    short_n: int = 0
    rebalance_fraction: float = 1.0
    max_weight_per_symbol: float = 1.0
    weight_scheme: Literal["equal", "score_weighted", "inverse_volatility"] = "equal"
    cash_reserve_pct: float = 0.0
    min_trade_size: float = 1.0
    signal_conditions: list[SignalConditionCfg] = []


class StrategyCfg(BaseModel):
    id: str
    user_id: str
    name: str = ""
    enabled: bool = True
    allocation_pct: float = 100.0
    universe: UniverseCfg = UniverseCfg()
    params: StrategyParamsCfg = StrategyParamsCfg()


class AppConfig(BaseModel):
    broker: BrokerCfg = BrokerCfg()
    runner: RunnerCfg = RunnerCfg()
    ledger: LedgerCfg = LedgerCfg()
    telemetry: TelemetryCfg = TelemetryCfg()
    signal_sources: list[SignalSourceCfg] = []
    synthetic_indices: list[SyntheticIndexCfg] = []
    users: list[UserCfg] = []
    strategies: list[StrategyCfg] = []

    def user(self, user_id: str) -> Optional[UserCfg]:
        return next((u for u in self.users if u.id == user_id), None)

    def synthetic_index(self, index_id: Optional[str]) -> Optional[SyntheticIndexCfg]:
        return next((s for s in self.synthetic_indices if s.id == index_id), None)

    def signal_source(self, source_id: str) -> Optional[SignalSourceCfg]:
        return next((s for s in self.signal_sources if s.id == source_id), None)


def load_config(path: str) -> AppConfig:
    load_dotenv(override=False)
    p = pathlib.Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(p, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    broker = raw.get("broker") or {}

    def coalesce(yaml_val, env_val):
        return env_val if (yaml_val in (None, "") and env_val not in (None, "")) else yaml_val

    broker["api_key"]    = coalesce(broker.get("api_key"),    os.getenv("ALPACA_API_KEY"))
    broker["secret_key"] = coalesce(broker.get("secret_key"), os.getenv("ALPACA_SECRET_KEY"))
    broker["base_url"]   = coalesce(broker.get("base_url"),   os.getenv("ALPACA_BASE_URL")) or DEFAULT_PAPER_URL

    raw["broker"] = broker
    return AppConfig.model_validate(raw)
