from flask import Blueprint, request, jsonify, g, current_app

from security.rbac import require_roles
from services import room_catalog
from utils.audit import log_event
from utils.serializers import room_to_dict

rooms_bp = Blueprint("rooms", __name__, url_prefix="/rooms")


@rooms_bp.get("")
def list_rooms():
    filters, errors = room_catalog.parse_room_filters(request.args)
    if errors:
        return jsonify(error="Invalid filters", details=errors), 400

    rows = room_catalog.list_rooms(filters, limit=current_app.config.get("MAX_LIST_RESULTS", 200))
    return jsonify([room_to_dict(r) for r in rows]), 200


@rooms_bp.get("/<int:room_id>")
def get_room(room_id: int):
    return jsonify(room_to_dict(room_catalog.get_room(room_id))), 200


@rooms_bp.post("")
@require_roles("admin")
def create_room():
    data = request.get_json(silent=True) or {}
    room = room_catalog.create_room(data)

    log_event("ROOM_CREATE", user_id=g.user.id, entity="room", entity_id=room.id, metadata={"number": room.number})
    return jsonify(room_to_dict(room)), 201


@rooms_bp.put("/<int:room_id>")
@require_roles("admin")
def update_room(room_id: int):
    data = request.get_json(silent=True) or {}
    room = room_catalog.update_room(room_id, data)

    log_event("ROOM_UPDATE", user_id=g.user.id, entity="room", entity_id=room.id, metadata={"fields": sorted(data)})
    return jsonify(room_to_dict(room)), 200


@rooms_bp.delete("/<int:room_id>")
@require_roles("admin")
def delete_room(room_id: int):
    room_catalog.delete_room(room_id)

    log_event("ROOM_DELETE", user_id=g.user.id, entity="room", entity_id=room_id)
    return jsonify(message="Room deleted successfully"), 200
