"""
Waitlist routes — public application submission and queue position.
"""
import logging

from flask import Blueprint, current_app, jsonify, request

from teedclub.services.applications import (
    ApplicationNotFoundError,
    DuplicateApplicationError,
    capacity_snapshot,
    get_queue_position,
    submit_application,
)
from teedclub.waitlist.queue import calculate_movement, potential_position, urgency_level
from teedclub.waitlist.validation import ValidationErrors, validate_submission

logger = logging.getLogger('routes.waitlist')

bp = Blueprint('waitlist', __name__)


@bp.route('/api/waitlist/submit', methods=['POST'])
def submit():
    """Validate, score and store a waitlist application."""
    data = request.get_json(silent=True)
    answers = validate_submission(data)
    if isinstance(answers, ValidationErrors):
        return jsonify({'error': 'Invalid application data', 'errors': answers.errors}), 400
    if not answers.terms_accepted:
        return jsonify({
            'error': 'You must accept the terms to apply',
            'errors': [{'path': 'termsAccepted', 'message': 'Terms must be accepted'}],
        }), 400

    referred_by = data.get('ref') or request.args.get('ref')
    try:
        result = submit_application(
            answers,
            current_app.extensions['scoring_engine'],
            referred_by=referred_by if isinstance(referred_by, str) else None,
        )
    except DuplicateApplicationError:
        return jsonify({'error': 'An application already exists for this email'}), 409
    except Exception:
        logger.error("Waitlist submission failed", exc_info=True)
        return jsonify({'error': 'Failed to submit application'}), 500

    return jsonify(result.to_dict()), 200


@bp.route('/api/waitlist/position')
def position():
    """Where an applicant stands in line. ?previous=<n> adds movement since the last view."""
    email = (request.args.get('email') or '').strip()
    if not email:
        return jsonify({'error': 'email is required'}), 400

    config = current_app.extensions['scoring_config_loader'].get()
    try:
        application, queue_position = get_queue_position(email, config)
    except ApplicationNotFoundError:
        return jsonify({'error': 'Application not found'}), 404

    if queue_position is None:
        return jsonify({'status': application['status']})

    capacity = capacity_snapshot()
    direction, spots = calculate_movement(queue_position.position,
                                          request.args.get('previous', type=int))
    spots_per_referral = config.queue.referral_boost_spots
    return jsonify({
        'status': application['status'],
        **queue_position.to_dict(),
        'potential_position': potential_position(queue_position.position,
                                                 queue_position.referral_count,
                                                 spots_per_referral=spots_per_referral),
        'movement': {'direction': direction, 'spots': spots},
        'spots_remaining': capacity['spots_remaining'],
        'urgency': urgency_level(capacity['spots_remaining']),
    })
