"""
Main Blueprint - Public Routes

- Package catalog
- Contact form (forwarded by mail, rate limited per client IP)
"""

from flask import Blueprint, current_app, jsonify

from portal.domain.catalog import catalog_payload
from portal.extensions import limiter
from portal.forms import ContactForm
from portal.services.mailer import MailDeliveryError, send_contact_enquiry
from portal.utils.sanitize import sanitize_email, sanitize_phone, sanitize_string


main_bp = Blueprint('main', __name__)


@main_bp.route('/packages', methods=['GET'])
def packages():
    payload = catalog_payload()
    payload['success'] = True
    return jsonify(payload)


@main_bp.route('/contact', methods=['POST'])
@limiter.limit(lambda: current_app.config['CONTACT_RATE_LIMIT'])
def contact():
    form = ContactForm()
    if not form.validate():
        return jsonify({'success': False, 'error': form.first_error()}), 400

    try:
        send_contact_enquiry(
            name=sanitize_string(form.name.data, 100),
            email=sanitize_email(form.email.data),
            phone=sanitize_phone(form.phone.data),
            subject=sanitize_string(form.subject.data, 200),
            message=sanitize_string(form.message.data, 2000),
        )
    except MailDeliveryError as exc:
        return jsonify({'success': False, 'error': str(exc)}), 500

    return jsonify({'success': True, 'message': 'Email sent successfully!'})
