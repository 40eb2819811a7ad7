from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user
import logging

from utils import json_body

logger = logging.getLogger(__name__)

bp = Blueprint("earnings", __name__)


def lifecycle():
    return current_app.extensions["account_lifecycle"]

# ======================================================
# TASKS
# ======================================================
@bp.route("/complete-task", methods=["POST"])
@login_required
def complete_task():
    """
    Credit a finished task. Expected JSON: {taskId, taskTitle, reward}
    Premium accounts earn the boosted reward.
    """
    data = json_body()
    result = lifecycle().complete_task(
        current_user.id,
        data.get("taskId"),
        data.get("taskTitle"),
        data.get("reward"),
    )

    return jsonify({
        "success": True,
        "message": f"Task completed! ₦{result['reward']} added to your balance.",
        **result
    }), 200

# ======================================================
# PREMIUM
# ======================================================
@bp.route("/upgrade", methods=["POST"])
@login_required
def upgrade():
    data = json_body()
    result = lifecycle().upgrade_to_premium(current_user.id, data.get("transactionProof"))

    return jsonify({
        "success": True,
        "message": "Upgrade successful! You are now a Premium member.",
        **result
    }), 200

# ======================================================
# WITHDRAWALS
# ======================================================
@bp.route("/withdraw", methods=["POST"])
@login_required
def withdraw():
    """
    Queue a withdrawal for settlement. Expected JSON: {bankName, accountNumber, amount}
    The ledger entry stays pending until paid out.
    """
    data = json_body()
    result = lifecycle().withdraw(
        current_user.id,
        data.get("bankName"),
        data.get("accountNumber"),
        data.get("amount"),
    )
    logger.info(f"Withdrawal {result['reference']} queued for account {current_user.id}")

    return jsonify({
        "success": True,
        "message": "Withdrawal request submitted! Funds will be processed within 24 hours.",
        **result
    }), 200
