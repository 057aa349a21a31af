from flask import Blueprint, request
from flask_jwt_extended import jwt_required, current_user
from yumrun.services import recommendation_service
from yumrun.utils.helpers import api_response

recommendations_bp = Blueprint('recommendations', __name__)


@recommendations_bp.route('/api/recommendations', methods=['GET'])
@jwt_required()
def personal_recommendations():
    """Top picks for the current user"""
    items = recommendation_service.recommendations_for_user(current_user)
    return api_response(items, count=len(items))


@recommendations_bp.route('/api/recommendations/health', methods=['GET'])
def health_recommendations():
    condition = request.args.get('condition') or request.args.get('healthCondition')
    items = recommendation_service.health_recommendations(condition)
    return api_response({'recommendations': items, 'condition': condition or 'Healthy'})


@recommendations_bp.route('/api/recommendations/popular', methods=['GET'])
def popular_recommendations():
    try:
        limit = min(max(int(request.args.get('limit', 10)), 1), 50)
    except ValueError:
        limit = 10
    items = recommendation_service.popular_items(limit)
    return api_response(items, count=len(items))


@recommendations_bp.route('/api/recommendations/history', methods=['GET'])
@jwt_required()
def history_recommendations():
    """Items the current user has ordered, most frequent first"""
    items = recommendation_service.order_history_items(current_user)
    return api_response(items, count=len(items))
