#!/usr/bin/env python3
"""
Flask API for the ExamDesk candidate pipeline.
Endpoints: candidate acquisition, selection (rerank), enrichment, section listing.
"""

import logging
import os
from functools import wraps
from typing import Any, Dict, Optional, Tuple

from flask import Flask, g, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from werkzeug.middleware.proxy_fix import ProxyFix

from cors_config import configure_cors
from examdesk.config import Config, setup_logging
from examdesk.ingestion.archive import ArchiveClient
from examdesk.ingestion.article_types import ScopeKey
from examdesk.ingestion.dates import parse_month
from examdesk.ingestion.feed_sources import DEFAULT_REGISTRY, FeedRegistry
from examdesk.ingestion.search import SearchClient
from examdesk.llm.oracle import OracleClient
from examdesk.pipeline.acquisition import CandidateAcquirer
from examdesk.selection.enrich import (
    CandidatesNotFoundError,
    EnrichmentEngine,
    EnrichmentRequestError,
    QuotaExceededError,
)
from examdesk.selection.quota import BaseQuotaGate, DailyQuotaGate
from examdesk.selection.rerank import RerankEngine, SelectionFailedError
from examdesk.storage.repo_base import BaseRepo, RepoError

logger = logging.getLogger(__name__)


def _scope_from_body(body: Dict[str, Any]) -> Tuple[Optional[ScopeKey], Optional[str]]:
    year = body.get("year")
    month = body.get("month")
    section = (body.get("section") or "").strip() if isinstance(body.get("section"), str) else ""
    category = (body.get("category") or "").strip() if isinstance(body.get("category"), str) else ""
    if not year or not month or not section or not category:
        return None, "Missing required fields: year, month, section, category"
    try:
        y = int(year)
        m = parse_month(month)
    except (TypeError, ValueError):
        return None, "Invalid year or month"
    if y < 2000 or y > 2100:
        return None, "Invalid year or month"
    return ScopeKey(y, m, section, category), None


def _current_user_id() -> Optional[str]:
    uid = (request.headers.get("X-User-Id") or "").strip()
    if uid:
        return uid
    auth = (request.headers.get("Authorization") or "").strip()
    if auth.lower().startswith("bearer "):
        auth = auth[7:].strip()
    return auth or None


def require_user(f):
    """Decorator to require a caller identity"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = _current_user_id()
        if not user_id:
            return jsonify({'error': 'Authorization required'}), 401
        g.user_id = user_id
        return f(*args, **kwargs)
    return decorated_function


def create_app(
    config: Optional[Config] = None,
    *,
    repo: Optional[BaseRepo] = None,
    oracle: Optional[OracleClient] = None,
    quota: Optional[BaseQuotaGate] = None,
    archive: Optional[ArchiveClient] = None,
    search: Optional[SearchClient] = None,
    registry: FeedRegistry = DEFAULT_REGISTRY,
) -> Flask:
    config = config or Config.from_env()
    repo = repo or config.build_repo()
    oracle = oracle or config.build_oracle()
    quota = quota or DailyQuotaGate(default_quota=config.default_daily_enrich_quota)

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)
    app.config['JSON_SORT_KEYS'] = False
    configure_cors(app)

    limiter = Limiter(
        get_remote_address,
        app=app,
        default_limits=["1000 per day", "200 per hour"],
        storage_uri="memory://",
    )

    acquirer = CandidateAcquirer(repo=repo, config=config, registry=registry, archive=archive, search=search)
    reranker = None
    enricher = None
    if oracle is not None:
        reranker = RerankEngine(
            repo=repo,
            oracle=oracle,
            max_candidates=config.rerank_max_candidates,
            selection_size=config.selection_size,
            prompt_version=config.selection_prompt_version,
        )
        enricher = EnrichmentEngine(
            repo=repo,
            oracle=oracle,
            quota=quota,
            max_items=config.enrich_max_items,
            prompt_version=config.enrich_prompt_version,
            delay_seconds=config.enrich_delay_seconds,
        )

    app.extensions["examdesk"] = {
        "repo": repo,
        "acquirer": acquirer,
        "reranker": reranker,
        "enricher": enricher,
        "quota": quota,
    }

    @app.route('/api/health')
    @limiter.exempt
    def health():
        return jsonify({'status': 'ok', 'oracle_configured': oracle is not None})

    @app.route('/api/sections', methods=['GET'])
    def sections():
        return jsonify({'sections': registry.sections()})

    @app.route('/api/candidates', methods=['POST'])
    @limiter.limit("60 per minute")
    def fetch_candidates():
        body = request.get_json(silent=True) or {}
        scope, err = _scope_from_body(body)
        if err:
            return jsonify({'error': err}), 400
        try:
            result = acquirer.fetch_candidates(
                scope.year,
                scope.month,
                scope.section,
                scope.category,
                force_refresh=bool(body.get("forceRefresh") or body.get("force_refresh")),
            )
        except RepoError as e:
            logger.error(f"Candidate acquisition failed for {scope.label()}: {e}")
            return jsonify({'error': 'Candidate store unavailable'}), 500
        return jsonify(result.to_dict())

    @app.route('/api/rerank', methods=['POST'])
    @limiter.limit("20 per minute")
    def rerank():
        body = request.get_json(silent=True) or {}
        scope, err = _scope_from_body(body)
        if err:
            return jsonify({'error': err}), 400
        if reranker is None:
            return jsonify({'error': 'AI service not configured'}), 500
        try:
            result = reranker.rerank(scope)
        except SelectionFailedError as e:
            logger.error(f"Selection failed for {scope.label()}: {e}")
            return jsonify({'error': str(e)}), 502
        except RepoError as e:
            logger.error(f"Rerank store error for {scope.label()}: {e}")
            return jsonify({'error': 'Candidate store unavailable'}), 500
        return jsonify(result.to_dict())

    @app.route('/api/enrich', methods=['POST'])
    @limiter.limit("10 per minute")
    @require_user
    def enrich():
        body = request.get_json(silent=True) or {}
        ids = body.get("candidate_ids", body.get("draft_ids"))
        if not isinstance(ids, list) or not ids:
            return jsonify({'error': 'Missing required parameter: candidate_ids (array)'}), 400
        if enricher is None:
            return jsonify({'error': 'AI service not configured'}), 500
        try:
            result = enricher.enrich(g.user_id, [str(i) for i in ids])
        except EnrichmentRequestError as e:
            return jsonify({'error': str(e)}), 400
        except QuotaExceededError as e:
            return jsonify({'error': str(e), 'remaining_quota': e.remaining, 'plan': e.plan}), 429
        except CandidatesNotFoundError as e:
            return jsonify({'error': str(e)}), 404
        except RepoError as e:
            logger.error(f"Enrichment store error: {e}")
            return jsonify({'error': 'Candidate store unavailable'}), 500
        return jsonify(result.to_dict())

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({'error': 'Rate limit exceeded', 'message': str(e.description)}), 429

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify({'error': 'Internal server error'}), 500

    return app


if __name__ == '__main__':
    setup_logging()
    port = int(os.environ.get('PORT', 5002))
    debug = os.environ.get('FLASK_ENV') == 'development'
    logger.info(f"Starting ExamDesk API on port {port}")
    create_app().run(host='0.0.0.0', port=port, debug=debug, threaded=True)
