"""
API route modules.
"""
from video_insights.api.routes import insights

__all__ = ["insights"]
