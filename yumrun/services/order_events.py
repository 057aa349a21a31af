"""
Realtime order updates over Socket.IO

Clients join ``order:<id>``, ``restaurant:<id>`` or ``user:<id>`` rooms and
receive ``order_status`` and ``payment_status`` events.
"""
import logging
from flask_socketio import emit, join_room, leave_room
from yumrun.utils.helpers import is_valid_object_id

logger = logging.getLogger(__name__)

ROOM_PREFIXES = ('order', 'restaurant', 'user')

_registered = set()


def room_name(kind, identifier):
    return f'{kind}:{identifier}'


def _room_from_payload(data):
    if not isinstance(data, dict):
        return None
    kind = data.get('type')
    identifier = data.get('id')
    if kind not in ROOM_PREFIXES or not is_valid_object_id(identifier):
        return None
    return room_name(kind, identifier)


def register_socket_events(socketio):
    """Attach the room handlers once per SocketIO instance"""
    if id(socketio) in _registered:
        return
    _registered.add(id(socketio))

    @socketio.on('connect')
    def handle_connect():
        logger.debug("Socket client connected")
        emit('connected', {'message': 'Connected to YumRun updates'})

    @socketio.on('join')
    def handle_join(data):
        room = _room_from_payload(data)
        if room is None:
            emit('error', {'message': 'Invalid room'})
            return
        join_room(room)
        emit('joined', {'room': room})

    @socketio.on('leave')
    def handle_leave(data):
        room = _room_from_payload(data)
        if room is None:
            return
        leave_room(room)
        emit('left', {'room': room})


def _order_payload(order):
    return {
        'order_id': order.id,
        'order_number': order.order_number,
        'status': order.status,
        'payment_status': order.payment_status,
        'updated_at': order.updated_at.isoformat() if order.updated_at else None
    }


def _rooms_for(order):
    return (
        room_name('order', order.id),
        room_name('restaurant', order.restaurant_id),
        room_name('user', order.user_id)
    )


def broadcast_order_status(order):
    from yumrun import socketio

    payload = _order_payload(order)
    for room in _rooms_for(order):
        socketio.emit('order_status', payload, to=room)
    logger.debug(f"Broadcast order_status {order.status} for order {order.id}")


def broadcast_payment_status(order):
    from yumrun import socketio

    payload = _order_payload(order)
    payload['payment_details'] = order.payment_details or {}
    for room in _rooms_for(order):
        socketio.emit('payment_status', payload, to=room)
