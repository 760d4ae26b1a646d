from .ingestion_service import ExcelOrderSource, InMemoryOrderSource, OrderSource
from .analysis_service import OrderAnalyzer
from .forecast_service import ForecastEngine
from .recommendation_service import RecommendationService
from .mapping_service import MappingService
from .reporting_service import ReportingService

__all__ = [
    'ExcelOrderSource',
    'InMemoryOrderSource',
    'OrderSource',
    'OrderAnalyzer',
    'ForecastEngine',
    'RecommendationService',
    'MappingService',
    'ReportingService'
]
