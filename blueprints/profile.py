from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user

from utils import json_body


bp = Blueprint('profile', __name__)


def lifecycle():
    return current_app.extensions["account_lifecycle"]

# ----------------------------------------------------------------------------------
# PROFILE DATA FOR THE FRONTEND (no password, ledger or task list)
# ----------------------------------------------------------------------------------
@bp.route("/profile", methods=["GET"])
@login_required
def get_profile():
    account = lifecycle().get_profile(current_user.id)
    return jsonify({"success": True, "user": account.to_dict()}), 200


@bp.route("/profile", methods=["PUT"])
@login_required
def update_profile():
    """Partial update of name, phone and settings"""
    data = json_body()
    account = lifecycle().update_profile(
        current_user.id,
        name=data.get("name"),
        phone=data.get("phone"),
        settings=data.get("settings"),
    )

    return jsonify({
        "success": True,
        "message": "Profile updated successfully",
        "user": {
            "name": account.name,
            "phone": account.phone,
            "settings": account.settings
        }
    }), 200

#=======================================================================================
#      DASHBOARD
#=======================================================================================

@bp.route("/dashboard", methods=["GET"])
@login_required
def dashboard():
    return jsonify({
        "success": True,
        "dashboard": lifecycle().get_dashboard(current_user.id)
    }), 200


@bp.route("/track-whatsapp-join", methods=["POST"])
@login_required
def track_whatsapp_join():
    account = lifecycle().track_whatsapp_join(current_user.id)
    current_app.logger.info(f"Account {account.id} joined WhatsApp group ({account.group_joins} joins)")

    return jsonify({
        "success": True,
        "message": "WhatsApp join tracked successfully"
    }), 200
