#  This file is part of PubIngest.
#  PubIngest is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#  PubIngest is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#  You should have received a copy of the GNU General Public License
#  along with PubIngest.  If not, see <http://www.gnu.org/licenses/>.


"""
Read-only introspection of the ingestion service.

Everything under /api answers JSON. Nothing here changes state.
"""

import threading
from typing import Any, Dict

from fastapi import APIRouter, FastAPI, HTTPException, Response
from fastapi.responses import RedirectResponse

import pubingest
from pubingest.common import logHeader, showJobs
from pubingest.formatter import check_int

LOG_FIELDS = ('time', 'level', 'thread', 'program', 'method', 'line', 'message', 'user')
NO_CACHE = 'max-age=0,no-cache,no-store'


class IngestionApi(object):

    def __init__(self, orchestrator=None, scheduler=None):
        # fall back to the process globals, which exist only after initialize()
        self._orchestrator = orchestrator
        self._scheduler = scheduler

    @property
    def orchestrator(self):
        return self._orchestrator or pubingest.ORCHESTRATOR

    @property
    def scheduler(self):
        return self._scheduler or pubingest.SCHED

    @staticmethod
    def label_thread(name='WEBSERVER'):
        threadname = threading.current_thread().name
        if "Thread-" in threadname or "AnyIO" in threadname:
            threading.current_thread().name = name

    def index(self) -> Dict[str, Any]:
        return {'endpoints': ['ingestion', 'jobs', 'log']}

    def ingestion(self) -> Dict[str, Any]:
        self.label_thread()
        orchestrator = self.orchestrator
        if orchestrator is None:
            raise HTTPException(status_code=503, detail='Content ingestion is not initialised')
        return {
            'source_dir': orchestrator.source_dir,
            'cron_expression': orchestrator.cron_expression,
            'cron_start_delay': orchestrator.cron_start_delay,
            'last_run_time': orchestrator.last_run_time,
            'number_of_runs': orchestrator.number_of_runs,
            'queue_size': orchestrator.queue_size,
        }

    def jobs(self) -> Dict[str, Any]:
        self.label_thread()
        scheduler = self.scheduler
        if scheduler is None:
            raise HTTPException(status_code=503, detail='Scheduler is not initialised')
        return {
            'jobs': scheduler.get_jobs(),
            'summary': showJobs(scheduler.scheduler),
        }

    def log(self, limit=100) -> Dict[str, Any]:
        self.label_thread()
        limit = check_int(limit, 100)
        entries = [dict(zip(LOG_FIELDS, item)) for item in pubingest.LOGLIST[:limit]]
        return {
            'header': logHeader().splitlines(),
            'entries': entries,
        }


def create_api_router(api: IngestionApi) -> APIRouter:
    """Expose the IngestionApi handlers as GET routes."""
    router = APIRouter()

    # plain def handlers run in the threadpool, like the scheduled job
    @router.get("/")
    def index(response: Response):
        response.headers['Cache-Control'] = NO_CACHE
        return api.index()

    @router.get("/ingestion")
    def ingestion(response: Response):
        response.headers['Cache-Control'] = NO_CACHE
        return api.ingestion()

    @router.get("/jobs")
    def jobs(response: Response):
        response.headers['Cache-Control'] = NO_CACHE
        return api.jobs()

    @router.get("/log")
    def log(response: Response, limit: str = '100'):
        response.headers['Cache-Control'] = NO_CACHE
        return api.log(limit)

    return router


def create_app(orchestrator=None, scheduler=None, http_root='') -> FastAPI:
    """Build the introspection application mounted at http_root."""
    http_root = http_root.rstrip('/')
    app = FastAPI(title="PubIngest", version="1.0.0", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.api = IngestionApi(orchestrator, scheduler)
    app.include_router(create_api_router(app.state.api), prefix=http_root + '/api', tags=["Ingestion"])

    @app.get(http_root + '/', include_in_schema=False)
    def index():
        return RedirectResponse(url=http_root + '/api/ingestion')

    return app
