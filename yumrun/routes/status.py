from datetime import datetime
from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from yumrun import db
from yumrun.models.models import MenuItem, Order, Restaurant, User

status_bp = Blueprint('status', __name__)


@status_bp.route('/api/status', methods=['GET'])
def get_status():
    """API health check with database connectivity and record counts"""
    database = {'connected': False, 'dialect': db.engine.dialect.name}
    try:
        db.session.execute(text('SELECT 1'))
        database['connected'] = True
        database['counts'] = {
            'users': User.query.count(),
            'restaurants': Restaurant.query.count(),
            'menu_items': MenuItem.query.count(),
            'orders': Order.query.count()
        }
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Database status check failed: {str(e)}")
        database['error'] = 'Database unavailable'

    return {
        'success': True,
        'status': 'Online',
        'message': 'YumRun API is running',
        'version': current_app.config['API_VERSION'],
        'environment': current_app.config['ENVIRONMENT'],
        'timestamp': datetime.utcnow().isoformat(),
        'database': database
    }
