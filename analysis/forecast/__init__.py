"""
FORECAST - Next Price Prediction

Remote inference first, a local model if one is installed, and a
weighted trend heuristic that always answers.
"""

from .base import PredictionStrategy
from .heuristic import HeuristicPredictor, predict_heuristic
from .local_model import LocalModelPredictor, predict_local_model
from .orchestrator import PredictionCascade, build_default_cascade, predict
from .pipeline import Forecast, ForecastPipeline
from .remote import RemoteInferencePredictor, parse_prediction_text, predict_remote
from .training import LocalModelTrainer

__all__ = [
    "PredictionStrategy",
    "HeuristicPredictor",
    "LocalModelPredictor",
    "RemoteInferencePredictor",
    "LocalModelTrainer",
    "PredictionCascade",
    "ForecastPipeline",
    "Forecast",
    "build_default_cascade",
    "predict",
    "predict_heuristic",
    "predict_local_model",
    "predict_remote",
    "parse_prediction_text",
]
