from functools import wraps
from flask_jwt_extended import create_access_token, current_user, verify_jwt_in_request
from yumrun.utils.errors import ForbiddenError

CUSTOMER = 'customer'
RESTAURANT = 'restaurant'
DELIVERY_RIDER = 'delivery_rider'
ADMIN = 'admin'

ROLES = (CUSTOMER, RESTAURANT, DELIVERY_RIDER, ADMIN)
SELF_SERVICE_ROLES = (CUSTOMER, RESTAURANT, DELIVERY_RIDER)

ROLE_LABELS = {
    CUSTOMER: 'Customer',
    RESTAURANT: 'Restaurant owner',
    DELIVERY_RIDER: 'Delivery rider',
    ADMIN: 'Admin',
}


def register_user_loaders(jwt):
    from yumrun.models.models import User

    @jwt.user_identity_loader
    def user_identity_lookup(user):
        return user.id if isinstance(user, User) else str(user)

    @jwt.user_lookup_loader
    def user_lookup_callback(jwt_header, jwt_data):
        user = User.query.get(jwt_data['sub'])
        if user is None or not user.is_active:
            return None
        return user


def issue_token(user):
    return create_access_token(identity=user, additional_claims={'role': user.role})


def roles_required(*roles):
    """Require a valid token whose user holds one of ``roles``"""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if current_user.role not in roles:
                labels = ' or '.join(ROLE_LABELS[r] for r in roles)
                raise ForbiddenError(f'Access denied. {labels} permissions required.')
            return fn(*args, **kwargs)
        return wrapper
    return decorator
