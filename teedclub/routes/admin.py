"""
Admin routes — scoring config management and waitlist actions.

Every route here requires `Authorization: Bearer <ADMIN_TOKEN>` unless no
token is configured (local dev).
"""
import hmac
import logging

from flask import Blueprint, current_app, jsonify, request

from teedclub.services.applications import (
    ApplicationNotFoundError,
    InsufficientCapacityError,
    approve_applications,
    capacity_snapshot,
    pending_scores,
    record_referral,
    reject_application,
)
from teedclub.services.lookups import lookup_signals
from teedclub.waitlist.scoring import score_distribution
from teedclub.waitlist.scoring_config import InvalidConfigError
from teedclub.waitlist.validation import ValidationErrors, validate_submission

logger = logging.getLogger('routes.admin')

bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _loader():
    return current_app.extensions['scoring_config_loader']


def _engine():
    return current_app.extensions['scoring_engine']


@bp.before_request
def require_admin_token():
    token = current_app.config.get('ADMIN_TOKEN')
    if not token:
        return  # No token set: open access (local dev)
    header = request.headers.get('Authorization', '')
    supplied = header[len('Bearer '):] if header.startswith('Bearer ') else ''
    if not hmac.compare_digest(supplied.encode(), token.encode()):
        return jsonify({'error': 'Unauthorized'}), 401


# ── Scoring config ───────────────────────────────────────────────────────────

@bp.route('/scoring-config')
def get_scoring_config():
    """Current config and its source; ?include_stats=true adds waitlist statistics."""
    payload = _loader().describe()
    if request.args.get('include_stats', '').lower() in ('1', 'true', 'yes'):
        scores = pending_scores()
        threshold = payload['threshold']
        payload['stats'] = {
            **score_distribution(scores),
            'would_auto_approve': sum(1 for s in scores if s >= threshold),
            'capacity': capacity_snapshot(),
        }
    return jsonify(payload)


@bp.route('/scoring-config', methods=['PUT'])
def update_scoring_config():
    """Merge changes into the stored config. Body: {changes, updated_by?, description?}."""
    data = request.get_json(silent=True) or {}
    changes = data.get('changes')
    if not isinstance(changes, dict) or not changes:
        return jsonify({'error': 'changes must be a non-empty object'}), 400
    try:
        config = _loader().update_config(changes, updated_by=data.get('updated_by'),
                                         description=data.get('description'))
    except InvalidConfigError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify({'version': config.version, 'config': config.to_dict()})


@bp.route('/scoring-config/reset', methods=['POST'])
def reset_scoring_config():
    data = request.get_json(silent=True) or {}
    try:
        config = _loader().reset_to_default(updated_by=data.get('updated_by'))
    except InvalidConfigError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify({'version': config.version, 'config': config.to_dict()})


@bp.route('/scoring-config/test', methods=['POST'])
def simulate_scoring_config():
    """Score sample answers against the current config plus overrides, without saving."""
    data = request.get_json(silent=True) or {}
    answers = validate_submission(data.get('answers'))
    if isinstance(answers, ValidationErrors):
        return jsonify({'error': 'Invalid answers', 'errors': answers.errors}), 400
    overrides = data.get('overrides') or {}
    if not isinstance(overrides, dict):
        return jsonify({'error': 'overrides must be an object'}), 400

    profile, equipment = lookup_signals(str(answers.email))
    try:
        breakdown = _engine().simulate(answers, overrides, profile=profile, equipment=equipment)
    except InvalidConfigError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify({
        'score': breakdown.capped_total,
        'auto_approve_eligible': breakdown.auto_approve_eligible,
        **breakdown.to_dict(),
    })


@bp.route('/scoring-config/cache/clear', methods=['POST'])
def clear_scoring_config_cache():
    _loader().invalidate()
    logger.info("Scoring config cache cleared")
    return jsonify({'status': 'cleared'})


# ── Waitlist actions ─────────────────────────────────────────────────────────

@bp.route('/waitlist/bulk-approve', methods=['POST'])
def bulk_approve():
    data = request.get_json(silent=True) or {}
    ids = data.get('application_ids')
    if (not isinstance(ids, list) or not ids
            or not all(isinstance(i, int) and not isinstance(i, bool) for i in ids)):
        return jsonify({'error': 'application_ids must be a non-empty list of ids'}), 400
    try:
        approved = approve_applications(ids)
    except InsufficientCapacityError as e:
        return jsonify({'error': str(e), 'spots_remaining': max(0, e.remaining)}), 409
    return jsonify({'approved': approved, 'count': len(approved)})


@bp.route('/waitlist/<int:application_id>/reject', methods=['POST'])
def reject(application_id):
    try:
        application = reject_application(application_id)
    except ApplicationNotFoundError:
        return jsonify({'error': 'Application not found'}), 404
    return jsonify(application)


@bp.route('/waitlist/referrals', methods=['POST'])
def add_referral():
    """Credit a referral to an applicant. Body: {email}."""
    data = request.get_json(silent=True) or {}
    email = data.get('email')
    if not isinstance(email, str) or not email.strip():
        return jsonify({'error': 'email is required'}), 400
    try:
        count = record_referral(email.strip())
    except ApplicationNotFoundError:
        return jsonify({'error': 'Application not found'}), 404
    return jsonify({'referral_count': count})
