from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from flask import Flask, g, request
from werkzeug.exceptions import HTTPException

from gatekeepr_common.context import bind_request_id, current_request_id, release_request_id
from gatekeepr_config.settings import Settings, init_runtime

from ..adapters import SimulatedSourceDataClient, SourceDataClient, TransitAccessClient
from ..domain.ports import RawDataSourcePort
from ..policy import AccessCounter, PolicyEngine, RuleCatalog, RuleFileSource, RuleReloadService
from ..response import AccessResponseBuilder, ResponseEngine
from ..service import ObjectRequestHandler
from .http import api_error
from .routes import make_access_blueprint

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    catalog: RuleCatalog
    counter: AccessCounter
    reloader: RuleReloadService
    policy_engine: PolicyEngine
    handler: ObjectRequestHandler


def build_runtime(settings: Settings) -> Runtime:
    """Wire catalog, counter, engines and upstream adapters. Nothing is started."""
    catalog = RuleCatalog()
    counter = AccessCounter(settings.access_reset_window_ms)

    reloader = RuleReloadService(
        RuleFileSource(settings.rules_path),
        catalog,
        interval_s=settings.rules_poll_interval_s,
        on_tick=lambda: counter.evict_stale(settings.access_evict_after_windows),
    )

    policy_engine = PolicyEngine(catalog)
    builder = AccessResponseBuilder(ResponseEngine(policy_engine))

    rights = TransitAccessClient(settings.transit_base_url, settings.transit_api_key)
    data_source: RawDataSourcePort
    if settings.source_base_url:
        data_source = SourceDataClient(settings.source_base_url)
    else:
        logger.info("No GATEKEEPR_SOURCE_BASE_URL set; serving simulated source data")
        data_source = SimulatedSourceDataClient()

    handler = ObjectRequestHandler(rights, data_source, builder, counter)
    return Runtime(catalog, counter, reloader, policy_engine, handler)


def create_app(
    handler: Optional[ObjectRequestHandler] = None,
    *,
    settings: Optional[Settings] = None,
    catalog: Optional[RuleCatalog] = None,
    policy_engine: Optional[PolicyEngine] = None,
) -> Flask:
    """Flask application factory.

    With no handler, the full runtime is built from `settings` (or the
    environment) and the rule poller is started.
    """
    app = Flask(__name__)

    if handler is None:
        runtime = build_runtime(settings or Settings.from_env())
        runtime.reloader.start()
        app.extensions["gatekeepr"] = runtime
        handler, catalog, policy_engine = runtime.handler, runtime.catalog, runtime.policy_engine
    if catalog is None:
        catalog = RuleCatalog()

    # --- middleware (request id) --------------------------------------------
    @app.before_request
    def bind_request_context() -> None:
        rid = request.headers.get("X-Request-Id") or request.headers.get("X-Correlation-Id")
        g.request_id_token = bind_request_id(rid)

    @app.after_request
    def add_request_id(resp):
        rid = current_request_id()
        if rid and "X-Request-Id" not in resp.headers:
            resp.headers["X-Request-Id"] = rid
        return resp

    @app.teardown_request
    def release_request_context(_exc) -> None:
        token = g.pop("request_id_token", None)
        if token is not None:
            release_request_id(token)

    @app.errorhandler(Exception)
    def unexpected_error(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error while serving %s %s", request.method, request.path)
        return api_error("internal", "Internal server error", status=500)

    # --- routes --------------------------------------------------------------
    app.register_blueprint(make_access_blueprint(handler=handler, catalog=catalog, policy_engine=policy_engine))

    return app


def main() -> None:
    init_runtime()
    settings = Settings.from_env()
    runtime = build_runtime(settings)
    runtime.reloader.start()

    app = create_app(
        runtime.handler,
        settings=settings,
        catalog=runtime.catalog,
        policy_engine=runtime.policy_engine,
    )
    app.extensions["gatekeepr"] = runtime

    logger.info("Starting GatekeepR on http://%s:%s", settings.api_host, settings.api_port)
    try:
        app.run(debug=settings.api_debug, host=settings.api_host, port=settings.api_port, threaded=True)
    finally:
        runtime.reloader.stop(timeout=2.0)


if __name__ == "__main__":
    main()
