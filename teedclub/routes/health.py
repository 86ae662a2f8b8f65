"""
Health routes — liveness, circuit breaker states, manual breaker reset.
"""
from flask import Blueprint, current_app, jsonify

from teedclub.services.circuit_breaker import OPEN, get_all_breakers

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
def service_health():
    """Breaker states plus where the scoring config currently comes from."""
    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    degraded = any(s['state'] == OPEN for s in services.values())
    loader = current_app.extensions['scoring_config_loader']
    config = loader.get()
    return jsonify({
        'status': 'degraded' if degraded else 'healthy',
        'services': services,
        'scoring_config': {'source': loader.get_source(), 'version': config.version},
    })


@bp.route('/api/health/<name>/reset', methods=['POST'])
def reset_breaker(name):
    breaker = get_all_breakers().get(name)
    if breaker is None:
        return jsonify({'error': f'Unknown circuit breaker: {name}'}), 404
    breaker.reset()
    return jsonify({'ok': True, **breaker.get_health()})
