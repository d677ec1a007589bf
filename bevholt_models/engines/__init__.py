from .pymc_engine import EngineConfig, PymcEngine

__all__ = ["EngineConfig", "PymcEngine"]
