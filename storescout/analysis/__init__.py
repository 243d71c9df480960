"""Analysis package — prompt building and LLM-backed store analysis."""

from storescout.analysis.analyzer import analyze_content
from storescout.analysis.categories import StoreCategory
from storescout.analysis.models import AnalysisMeta, AnalysisRecord

__all__ = ["analyze_content", "StoreCategory", "AnalysisMeta", "AnalysisRecord"]
