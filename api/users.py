from __future__ import annotations

from flask import Blueprint, request, jsonify, g, abort

from models import storage
from models.user import User
from models.schemas.user import UserUpdateSchema, UserOutSchema
from utils.decorators import csrf_required

bp = Blueprint("users", __name__)

user_update_schema = UserUpdateSchema()
user_out_schema = UserOutSchema()


@bp.patch("/users/me")
@csrf_required()
def update_me():
    """
    Change the display name of the session's user (CSRF protected)
    ---
    tags:
      - Users
    parameters:
      -  in: header
         name: X-CSRF-Token
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             user_name: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Missing or invalid CSRF token
      409:
        description: user_name taken
    """
    data = user_update_schema.load(request.get_json(silent=True) or {})
    user_id = g.session_claims.user_id

    session = storage.get_session()
    user = session.get(User, user_id)
    if user is None:
        abort(401, description="Unauthorized")

    taken = session.query(User).filter(User.user_name == data["user_name"], User.id != user_id).first()
    if taken:
        abort(409, description="user_name already taken")

    user.user_name = data["user_name"]
    storage.new(user)
    storage.save()
    return jsonify({"data": user_out_schema.dump(user)}), 200
