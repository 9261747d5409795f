"""
Authentication Routes

Signup, signin, signout and the current user's profile. Tokens are signed
with itsdangerous and accepted from ``Authorization: Bearer`` or the
``auth_token`` HTTP-only cookie.
"""

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from portal.extensions import _rate_limit_key, limiter
from portal.forms import ProfileForm, SigninForm, SignupForm
from portal.routes.guards import login_required_json
from portal.services import auth_service
from portal.utils.sanitize import sanitize_email


auth_bp = Blueprint('auth', __name__)


def _signin_rate_key():
    payload = request.get_json(silent=True) or {}
    email = sanitize_email(payload.get('email')) if isinstance(payload, dict) else ''
    return f'signin:{email}' if email else f'signin-ip:{_rate_limit_key()}'


def _with_auth_cookie(response, token):
    response.set_cookie(
        current_app.config['AUTH_COOKIE_NAME'],
        token,
        max_age=int(current_app.config['AUTH_TOKEN_MAX_AGE'].total_seconds()),
        httponly=True,
        secure=current_app.config.get('AUTH_COOKIE_SECURE', False),
        samesite='Lax',
    )
    return response


@auth_bp.route('/signup', methods=['POST'])
def signup():
    form = SignupForm()
    if not form.validate():
        return jsonify({'success': False, 'error': form.first_error()}), 400

    user = auth_service.signup(
        first_name=form.first_name.data,
        last_name=form.last_name.data or '',
        email=form.email.data,
        password=form.password.data,
    )
    token = auth_service.issue_token(user)
    response = jsonify({
        'success': True,
        'message': 'Account created successfully',
        'data': {'token': token, 'user': user.to_dict()},
    })
    response.status_code = 201
    return _with_auth_cookie(response, token)


@auth_bp.route('/signin', methods=['POST'])
@limiter.limit(lambda: current_app.config['SIGNIN_RATE_LIMIT'], key_func=_signin_rate_key)
def signin():
    form = SigninForm()
    if not form.validate():
        return jsonify({'success': False, 'error': form.first_error()}), 400

    user = auth_service.signin(form.email.data, form.password.data)
    token = auth_service.issue_token(user)
    current_app.logger.info('User signed in: %s', user.email)

    response = jsonify({
        'success': True,
        'message': 'Sign in successful',
        'data': {'token': token, 'user': user.to_dict()},
    })
    return _with_auth_cookie(response, token)


@auth_bp.route('/signout', methods=['POST'])
def signout():
    response = jsonify({'success': True, 'message': 'Signed out'})
    response.delete_cookie(current_app.config['AUTH_COOKIE_NAME'])
    return response


@auth_bp.route('/me', methods=['GET'])
@login_required_json
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})


@auth_bp.route('/profile', methods=['PUT'])
@login_required_json
def update_profile():
    payload = request.get_json(silent=True) or {}
    if 'email' in payload and payload['email'] != current_user.email:
        return jsonify({'success': False, 'error': 'Email cannot be changed'}), 400

    form = ProfileForm()
    if not form.validate():
        return jsonify({'success': False, 'error': form.first_error()}), 400

    user = auth_service.update_profile(
        current_user._get_current_object(),
        first_name=form.first_name.data if 'first_name' in payload else None,
        last_name=form.last_name.data if 'last_name' in payload else None,
        phone_number=form.phone_number.data if 'phone_number' in payload else None,
    )
    return jsonify({'success': True, 'message': 'Profile updated', 'user': user.to_dict()})
