"""
Health check service.
HTTP эндпоинт для мониторинга: бот, база данных, планировщик.
"""

from aiohttp import web
from datetime import datetime
from typing import Optional, Dict, Any, Tuple
from loguru import logger

from config.settings import settings
from database.session import check_db_connection, get_pool_status


class HealthCheckServer:
    """HTTP сервер для health check."""

    def __init__(self, host: str = "0.0.0.0", port: Optional[int] = None):
        self.host = host
        self.port = port or settings.HEALTH_CHECK_PORT
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._start_time: Optional[datetime] = None
        self._bot_running: bool = False

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self._health_handler)
        app.router.add_get("/live", self._live_handler)
        return app

    async def start(self) -> None:
        """Запускает HTTP сервер."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        self._start_time = datetime.now()
        logger.info(f"Health check server started on http://{self.host}:{self.port}")

    async def stop(self) -> None:
        """Останавливает HTTP сервер."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        logger.info("Health check server stopped")

    def set_bot_running(self, running: bool) -> None:
        self._bot_running = running

    async def _health_handler(self, request: web.Request) -> web.Response:
        """
        Полная проверка.
        GET /health — 200 если бот запущен и БД доступна, иначе 503.
        """
        db_healthy = await check_db_connection()
        scheduler_info = self._scheduler_info()

        payload: Dict[str, Any] = {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": self._get_uptime(),
            "checks": {
                "bot": {"healthy": self._bot_running},
                "database": {"healthy": db_healthy, **get_pool_status()},
                "scheduler": scheduler_info,
            },
        }

        if not (self._bot_running and db_healthy):
            payload["status"] = "unhealthy"
            return web.json_response(payload, status=503)

        return web.json_response(payload)

    async def _live_handler(self, request: web.Request) -> web.Response:
        """GET /live — процесс жив."""
        return web.json_response({
            "status": "alive",
            "uptime_seconds": self._get_uptime(),
        })

    def _get_uptime(self) -> float:
        if not self._start_time:
            return 0.0
        return (datetime.now() - self._start_time).total_seconds()

    @staticmethod
    def _scheduler_info() -> Dict[str, Any]:
        from services import scheduler as scheduler_module

        running_scheduler = scheduler_module.scheduler
        if not running_scheduler or not running_scheduler.running:
            return {"running": False, "jobs": {}}

        jobs = {
            job.id: job.next_run_time.isoformat() if job.next_run_time else None
            for job in running_scheduler.get_jobs()
        }
        return {"running": True, "jobs": jobs}


# Глобальный экземпляр
health_server = HealthCheckServer()
