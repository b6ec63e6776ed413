"""
Element-Set Microservice

Flask service exposing the cached N2YO element sets to the globe client.
The upstream API key stays on the server; responses only carry records.
"""

import argparse
import traceback
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from satglobe import __version__
from satglobe.acquisition import ElementSetAcquirer, ElementSetService
from satglobe.cache_store import create_cache_store
from satglobe.catalog import load_catalog
from satglobe.config import ServiceConfig
from satglobe.logging_config import configure_logging, configure_structlog

logger = structlog.get_logger(__name__)


def build_service(config: ServiceConfig) -> ElementSetService:
    """Wire the cache store, acquirer and catalog described by ``config``."""
    return ElementSetService(
        store=create_cache_store(config),
        acquirer=ElementSetAcquirer.from_config(config),
        catalog=load_catalog(config.catalog_path),
        slice_size=config.catalog_slice_size,
        ttl=timedelta(seconds=config.cache_ttl),
    )


def create_app(config: Optional[ServiceConfig] = None,
               service: Optional[ElementSetService] = None) -> Flask:
    config = config or ServiceConfig.from_env()
    service = service or build_service(config)

    app = Flask(__name__)
    CORS(app)
    app.config["SATGLOBE"] = config
    app.extensions["satglobe_service"] = service

    @app.route('/tle-first-1000', methods=['GET'])
    def get_element_sets():
        """Cached (or freshly acquired) element-set records"""
        try:
            snapshot = service.get_records()
        except Exception as e:
            logger.error("element_set_request_failed", error=str(e))
            return jsonify({
                "error": str(e),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }), 500

        return jsonify([record.to_wire() for record in snapshot.records])

    @app.route('/health', methods=['GET'])
    def health_check():
        """Service and cache freshness status"""
        return jsonify({
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "cache": service.status(),
            "configuration": {
                "cache_backend": config.cache_backend,
                "catalog_slice_size": config.catalog_slice_size,
                "request_delay_ms": config.request_delay_ms,
                "api_key_configured": bool(config.api_key),
            }
        }), 200

    @app.errorhandler(Exception)
    def handle_error(error):
        """Global error handler"""
        if isinstance(error, HTTPException):
            return error
        logger.error("unhandled_error", error=str(error), traceback=traceback.format_exc())
        return jsonify({
            "error": "Internal server error",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }), 500

    return app


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Serve cached satellite element sets")
    parser.add_argument("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: $PORT or 3000)")
    args = parser.parse_args(argv)

    config = ServiceConfig.from_env()
    configure_logging(config.log_level)
    configure_structlog()

    app = create_app(config)
    host = args.host or config.host
    port = args.port or config.port
    logger.info("starting_element_set_service", host=host, port=port)
    app.run(host=host, port=port)


if __name__ == '__main__':
    main()
