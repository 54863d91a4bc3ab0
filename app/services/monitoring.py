"""
Health checks and monitoring with Prometheus metrics
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response
import time
import psutil
import structlog

from app.config import get_settings

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
ACTIVE_SESSIONS = Gauge('active_sessions_total', 'Number of live practice sessions', ['kind'])
AI_GENERATION_REQUESTS = Counter('ai_generation_requests_total', 'Total AI generation requests', ['type', 'status'])
PLACEHOLDER_QUESTIONS = Counter('placeholder_questions_total', 'Questions replaced by the placeholder', ['subject'])
FALLBACK_FLASHCARDS_SERVED = Counter('fallback_flashcards_total', 'Flashcard batches served from the fallback bank', ['subject'])
SESSIONS_COMPLETED = Counter('test_sessions_completed_total', 'Completed test sessions', ['subject', 'status'])


class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_generator(self) -> dict:
        """Report whether live generation is configured"""
        settings = get_settings()
        if settings.gemini_api_key:
            return {
                "status": "healthy",
                "message": "Gemini generation configured",
                "endpoint": settings.gemini_api_url,
            }
        # Still serviceable: content comes from the fallback bank
        return {
            "status": "degraded",
            "message": "GEMINI_API_KEY not set, serving fallback content",
        }

    def get_system_metrics(self) -> dict:
        """Get system resource metrics"""
        try:
            memory = psutil.virtual_memory()
            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory_percent": memory.percent,
                "memory_available_gb": round(memory.available / (1024**3), 2),
                "uptime_seconds": time.time() - self.start_time
            }
        except Exception as e:
            logger.error("system_metrics_failed", error=str(e))
            return {"error": str(e)}

    def get_application_metrics(self) -> dict:
        """Get application-specific metrics"""
        from app.services.sessions import registry, scoreboard

        tests = registry.live_tests()
        decks = len(registry.decks)
        ACTIVE_SESSIONS.labels(kind="test").set(tests)
        ACTIVE_SESSIONS.labels(kind="flashcards").set(decks)
        return {
            "test_sessions": tests,
            "finished_test_sessions": len(registry.tests) - tests,
            "flashcard_sessions": decks,
            "scores_recorded": len(scoreboard.all()),
        }

    def get_health_status(self) -> dict:
        """Get overall health status"""
        checks = {
            "generator": self.check_generator(),
        }
        unhealthy_checks = [name for name, check in checks.items() if check["status"] == "unhealthy"]
        overall_status = "healthy" if not unhealthy_checks else "unhealthy"

        return {
            "status": overall_status,
            "timestamp": time.time(),
            "checks": checks,
            "system_metrics": self.get_system_metrics(),
            "application_metrics": self.get_application_metrics(),
            "unhealthy_components": unhealthy_checks
        }


# Global health checker instance
health_checker = HealthChecker()


def get_metrics():
    """Get Prometheus metrics"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
