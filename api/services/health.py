"""
Health Check Service

Reports the health of the service and its only dependency, MongoDB.
"""

import os
import time
from datetime import datetime
from typing import Dict, Any
from opentelemetry import trace

from services.mongodb import MongoDBService
from models.responses import HealthCheckResponse

tracer = trace.get_tracer(__name__)

SERVICE_NAME = "assembleias-api"


class HealthCheckService:
    """Service for system health monitoring."""

    def __init__(self, mongodb_service: MongoDBService, service_version: str = "1.0.0"):
        self.mongodb_service = mongodb_service
        self.service_version = service_version

    def get_health(self) -> Dict[str, Any]:
        """Get health status including the store."""
        with tracer.start_as_current_span("health.check") as span:
            mongodb_health = self._check_mongodb_health()
            overall_status = "healthy" if mongodb_health["status"] == "healthy" else "unhealthy"

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.mongodb_status": mongodb_health["status"]
            })

            return HealthCheckResponse(
                service=SERVICE_NAME,
                status=overall_status,
                version=self.service_version,
                environment=os.getenv('ENVIRONMENT', 'development'),
                timestamp=datetime.utcnow().isoformat() + "Z",
                dependencies={"mongodb": mongodb_health}
            ).model_dump()

    def _check_mongodb_health(self) -> Dict[str, Any]:
        """Check MongoDB connectivity and latency."""
        start_time = time.time()
        health_info = self.mongodb_service.health_check()
        health_info["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
        health_info["last_check"] = datetime.utcnow().isoformat() + "Z"
        return health_info
