import re
from flask import Blueprint, current_app
from flask_jwt_extended import jwt_required, current_user
from yumrun import db
from yumrun.models.models import User, default_health_profile
from yumrun.utils.auth import CUSTOMER, DELIVERY_RIDER, SELF_SERVICE_ROLES, issue_token
from yumrun.utils.errors import ConflictError, UnauthorizedError, ValidationError
from yumrun.utils.helpers import api_response, get_json_body, require_fields

auth_bp = Blueprint('auth', __name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
PHONE_PATTERN = re.compile(r'^\d{10}$')
MIN_PASSWORD_LENGTH = 6

HEALTH_LIST_FIELDS = ('allergies', 'health_conditions', 'dietary_preferences', 'disliked_foods', 'favourite_foods')
WEIGHT_GOALS = ('None', 'Lose', 'Maintain', 'Gain')


def _validate_email(email):
    email = (email or '').strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError('Please provide a valid email address')
    return email


def _validate_phone(phone):
    phone = str(phone or '').strip()
    if not PHONE_PATTERN.match(phone):
        raise ValidationError('Phone number must be 10 digits')
    return phone


def _validate_password(password, label='Password'):
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'{label} must be at least {MIN_PASSWORD_LENGTH} characters long')
    return password


def _auth_payload(user):
    return {'user': user.to_dict(include_private=True), 'token': issue_token(user)}


@auth_bp.route('/api/auth/register', methods=['POST'])
def register():
    """Register a new user"""
    data = get_json_body()
    require_fields(data, 'first_name', 'last_name', 'email', 'phone', 'password')

    email = _validate_email(data['email'])
    phone = _validate_phone(data['phone'])
    password = _validate_password(data['password'])

    role = data.get('role') or CUSTOMER
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(SELF_SERVICE_ROLES)}")

    if User.query.filter_by(email=email).first():
        raise ConflictError('Email already registered')

    user = User(email=email, phone=phone, role=role, health_profile=default_health_profile())
    user.set_name(str(data['first_name']), str(data['last_name']))
    user.set_password(password)
    if role == DELIVERY_RIDER:
        user.rider_details = {
            'vehicle_type': data.get('vehicle_type') or 'bike',
            'license_number': data.get('license_number') or '',
            'approved': False,
            'is_available': False,
            'completed_deliveries': 0
        }

    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"Registered {role} {user.id}")

    return api_response(_auth_payload(user), 'User registered successfully', 201)


@auth_bp.route('/api/auth/login', methods=['POST'])
def login():
    """Login user and return JWT token"""
    data = get_json_body()
    require_fields(data, 'email', 'password', message='Email and password are required')

    email = str(data['email']).strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(data['password']):
        raise UnauthorizedError('Invalid credentials')
    if not user.is_active:
        raise UnauthorizedError('Account is deactivated')

    return api_response(_auth_payload(user), 'Login successful')


@auth_bp.route('/api/auth/me', methods=['GET'])
@jwt_required()
def get_me():
    """Get current user profile"""
    return api_response(current_user.to_dict(include_private=True))


@auth_bp.route('/api/users/profile', methods=['PUT'])
@jwt_required()
def update_profile():
    """Update name, email, phone or address"""
    user = current_user
    data = get_json_body()

    if 'email' in data:
        email = _validate_email(data['email'])
        existing = User.query.filter_by(email=email).first()
        if existing and existing.id != user.id:
            raise ConflictError('Email already registered')
        user.email = email

    if 'phone' in data:
        user.phone = _validate_phone(data['phone'])

    if 'first_name' in data or 'last_name' in data:
        first_name = str(data.get('first_name', user.first_name)).strip()
        last_name = str(data.get('last_name', user.last_name)).strip()
        if not first_name or not last_name:
            raise ValidationError('First and last name cannot be empty')
        user.set_name(first_name, last_name)

    if 'address' in data:
        if not isinstance(data['address'], dict):
            raise ValidationError('address must be an object')
        user.address = dict(data['address'])

    db.session.commit()
    return api_response(user.to_dict(include_private=True), 'Profile updated successfully')


@auth_bp.route('/api/users/health-details', methods=['PUT'])
@jwt_required()
def update_health_details():
    """Update the health profile used by recommendations and nutrition targets"""
    user = current_user
    data = get_json_body()
    profile = dict(user.health_profile or default_health_profile())

    for field in HEALTH_LIST_FIELDS:
        if field in data:
            values = data[field]
            if isinstance(values, str):
                values = [v.strip() for v in values.split(',') if v.strip()]
            if not isinstance(values, list):
                raise ValidationError(f'{field} must be a list')
            profile[field] = [str(v) for v in values]

    if 'weight_management_goal' in data:
        goal = data['weight_management_goal']
        if goal not in WEIGHT_GOALS:
            raise ValidationError(f"weight_management_goal must be one of: {', '.join(WEIGHT_GOALS)}")
        profile['weight_management_goal'] = goal

    if 'daily_targets' in data:
        targets = data['daily_targets']
        if not isinstance(targets, dict):
            raise ValidationError('daily_targets must be an object')
        merged = dict(profile.get('daily_targets') or {})
        for key, value in targets.items():
            try:
                merged[key] = float(value)
            except (TypeError, ValueError):
                raise ValidationError(f'daily target {key} must be a number')
        profile['daily_targets'] = merged

    user.health_profile = profile
    db.session.commit()
    return api_response({'health_profile': profile}, 'Health details updated successfully')


@auth_bp.route('/api/auth/change-password', methods=['POST'])
@jwt_required()
def change_password():
    """Change user password"""
    user = current_user
    data = get_json_body()
    require_fields(data, 'current_password', 'new_password')

    if not user.check_password(data['current_password']):
        raise ValidationError('Current password is incorrect')
    user.set_password(_validate_password(data['new_password'], 'New password'))
    db.session.commit()

    return api_response(message='Password changed successfully')
