from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user
import logging

from utils import json_body


logger = logging.getLogger(__name__)
#==================================================================================================================

bp = Blueprint("auth", __name__)


def lifecycle():
    return current_app.extensions["account_lifecycle"]


#===========================================================================
#      REGISTER ROUTE
#==============================================================================
@bp.route("/register", methods=["POST"])
def register():
    """
    Create a new account gated by an invitation code.
    Expected JSON: {name, email, phone, password, referralCode}
    """
    data = json_body()
    account, token = lifecycle().register(
        name=data.get("name"),
        email=data.get("email"),
        phone=data.get("phone"),
        password=data.get("password"),
        referral_code=data.get("referralCode"),
    )
    current_app.logger.info(f"Registered account {account.id}")

    return jsonify({
        "success": True,
        "message": f"Registration successful! Welcome bonus ₦{account.balance} added.",
        "token": token,
        "user": {
            "id": account.id,
            "name": account.name,
            "email": account.email,
            "balance": account.balance,
            "isPremium": account.is_premium,
            "level": account.level,
            "streak": account.streak,
        }
    }), 201


# --------------------------------------------------
#      Login Route
# --------------------------------------------------
@bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate an account.
    Expected JSON: {email, password}
    """
    data = json_body()
    account, token = lifecycle().authenticate(data.get("email"), data.get("password"))

    return jsonify({
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": account.to_summary()
    }), 200


# --------------------------------------------------
#      Change Password
# --------------------------------------------------
@bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = json_body()
    lifecycle().change_password(
        current_user.id,
        data.get("currentPassword"),
        data.get("newPassword"),
    )
    logger.info(f"Password changed for account {current_user.id}")

    return jsonify({
        "success": True,
        "message": "Password changed successfully"
    }), 200
