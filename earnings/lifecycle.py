from datetime import timedelta
from typing import Dict, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from extensions import db
from logger import ledger_logger
from models import (
    Account,
    AccountTransaction,
    ACCOUNT_NUMBER_LENGTH,
    BANK_NAME_LENGTH,
    CompletedTask,
    EMAIL_LENGTH,
    NAME_LENGTH,
    PHONE_LENGTH,
    PROOF_LENGTH,
    TASK_ID_LENGTH,
    TITLE_LENGTH,
    TransactionStatus,
    TransactionType,
    utcnow,
)
from earnings.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from earnings.progression import (
    accrue_xp,
    compute_progress_percent,
    compute_reward,
    compute_success_rate,
    level_up_threshold,
)
from earnings.tokens import generate_token
from utils import (
    check_length,
    clean_str,
    make_reference,
    parse_amount,
    validate_email,
    validate_password,
)


logger = logging.getLogger(__name__)


class AccountLifecycle:
    """
    State transitions of an account. Each public method loads one account,
    applies a rule, and saves the full record in a single commit. Business
    constants come from the Flask config so they can be set per deployment.
    """

    def __init__(self, config):
        self.referral_codes = {code.upper() for code in config["REFERRAL_CODES"]}
        self.welcome_bonus = config["WELCOME_BONUS"]
        self.premium_bonus = config["PREMIUM_BONUS"]
        self.premium_fee = config["PREMIUM_FEE"]
        self.premium_days = config["PREMIUM_DAYS"]
        self.reward_multiplier = config["PREMIUM_REWARD_MULTIPLIER"]
        self.min_withdrawal = config["MIN_WITHDRAWAL"]
        self.max_amount = config["MAX_AMOUNT"]
        self.recent_limit = config["RECENT_TRANSACTIONS_LIMIT"]

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _load(account_id) -> Account:
        account = Account.find_by_id(account_id)
        if not account:
            raise NotFoundError("User not found")
        return account

    @staticmethod
    def _persist(account: Account, conflict_message: Optional[str] = None) -> Account:
        try:
            return account.save()
        except IntegrityError:
            db.session.rollback()
            if conflict_message:
                raise ConflictError(conflict_message)
            raise
        except SQLAlchemyError:
            db.session.rollback()
            logger.error(f"Failed to save account {account.id}", exc_info=True)
            raise

    @staticmethod
    def _record(account, tx_type, amount, description, status, reference):
        entry = AccountTransaction(
            type=tx_type.value,
            amount=amount,
            description=description,
            status=status.value,
            reference=reference,
            date=utcnow(),
        )
        account.transactions.append(entry)
        return entry

    # ------------------------------------------------------------------
    # registration & authentication
    # ------------------------------------------------------------------
    def register(self, name, email, phone, password, referral_code) -> Tuple[Account, str]:
        name = clean_str(name)
        email = clean_str(email).lower()
        phone = clean_str(phone)
        referral_code = clean_str(referral_code)

        errors = []
        if not name:
            errors.append({"field": "name", "message": "Name is required"})
        elif len(name) > NAME_LENGTH:
            errors.append({"field": "name", "message": f"Name must be at most {NAME_LENGTH} characters"})
        if not validate_email(email) or len(email) > EMAIL_LENGTH:
            errors.append({"field": "email", "message": "Valid email is required"})
        if not phone:
            errors.append({"field": "phone", "message": "Phone number is required"})
        elif len(phone) > PHONE_LENGTH:
            errors.append({"field": "phone", "message": f"Phone number must be at most {PHONE_LENGTH} characters"})
        if not validate_password(password):
            errors.append({"field": "password", "message": "Password must be at least 6 characters"})
        if not referral_code:
            errors.append({"field": "referralCode", "message": "Referral code is required"})
        if errors:
            raise ValidationError(errors[0]["message"], errors=errors)

        if Account.find_by_email(email):
            raise ConflictError("Email already registered. Please login instead.")

        referral_code = referral_code.upper()
        if referral_code not in self.referral_codes:
            logger.warning(f"Registration rejected for {email}: unknown referral code {referral_code}")
            raise ValidationError("Invalid referral code. Please enter a valid code.")

        now = utcnow()
        account = Account(
            name=name,
            email=email,
            phone=phone,
            referral_code=referral_code,
            balance=self.welcome_bonus,
            total_earned=self.welcome_bonus,
            level=1,
            xp=0,
            streak=1,
            last_login=now,
            last_password_change=now,
        )
        account.set_password(password)
        self._record(
            account,
            TransactionType.BONUS,
            self.welcome_bonus,
            "Welcome bonus",
            TransactionStatus.COMPLETED,
            make_reference("WELCOME"),
        )
        self._persist(account, conflict_message="Email already registered. Please login instead.")

        ledger_logger.info(f"Account {account.id} registered with welcome bonus {self.welcome_bonus}")
        return account, generate_token(account)

    def authenticate(self, email, password) -> Tuple[Account, str]:
        email = clean_str(email).lower()
        account = Account.find_by_email(email) if email else None
        if not account or not account.check_password(password):
            logger.warning(f"Failed login attempt for {email}")
            raise AuthError("Invalid email or password")

        if not account.is_active:
            raise ForbiddenError("Account is deactivated. Contact support.")

        account.last_login = utcnow()
        self._persist(account)
        return account, generate_token(account)

    # ------------------------------------------------------------------
    # profile
    # ------------------------------------------------------------------
    def get_profile(self, account_id) -> Account:
        return self._load(account_id)

    def update_profile(self, account_id, name=None, phone=None, settings=None) -> Account:
        account = self._load(account_id)

        name = check_length(clean_str(name), "name", NAME_LENGTH)
        phone = check_length(clean_str(phone), "phone", PHONE_LENGTH)

        changes = {}
        if settings is not None:
            if not isinstance(settings, dict):
                raise ValidationError("settings must be an object")
            for key, attr in Account.SETTINGS_FIELDS.items():
                if key not in settings:
                    continue
                if not isinstance(settings[key], bool):
                    raise ValidationError(f"settings.{key} must be true or false")
                changes[attr] = settings[key]

        # Nothing is touched until every field has passed validation
        if name:
            account.name = name
        if phone:
            account.phone = phone
        for attr, value in changes.items():
            setattr(account, attr, value)

        return self._persist(account)

    def change_password(self, account_id, current_password, new_password) -> Account:
        account = self._load(account_id)

        if not account.check_password(current_password):
            logger.warning(f"Password change rejected for account {account.id}: wrong current password")
            raise AuthError("Current password is incorrect")

        if not validate_password(new_password):
            raise ValidationError("Password must be at least 6 characters")

        account.set_password(new_password)
        account.last_password_change = utcnow()
        return self._persist(account)

    def track_whatsapp_join(self, account_id) -> Account:
        account = self._load(account_id)
        account.whatsapp_group_joined = True
        account.group_joins = (account.group_joins or 0) + 1
        account.last_group_join = utcnow()
        return self._persist(account)

    # ------------------------------------------------------------------
    # earnings
    # ------------------------------------------------------------------
    def complete_task(self, account_id, task_id, title, base_reward) -> Dict:
        task_id = clean_str(task_id) if isinstance(task_id, str) else task_id
        if task_id is None or task_id == "":
            raise ValidationError("taskId is required")
        task_id = check_length(str(task_id), "taskId", TASK_ID_LENGTH)
        title = check_length(clean_str(title), "taskTitle", TITLE_LENGTH) or task_id
        base_reward = parse_amount(base_reward, field="reward", allow_zero=True, max_value=self.max_amount)

        account = self._load(account_id)

        if account.has_completed(task_id):
            raise ConflictError("Task already completed")

        reward = compute_reward(base_reward, account.is_premium, self.reward_multiplier)
        progress = accrue_xp(account.xp, account.level, reward)

        account.balance += reward
        account.total_earned += reward
        account.tasks_completed += 1
        account.xp = progress.xp
        account.level = progress.level

        now = utcnow()
        account.completed_tasks.append(CompletedTask(
            task_id=task_id,
            title=title,
            reward=reward,
            completed_at=now,
        ))
        self._record(
            account,
            TransactionType.TASK,
            reward,
            f"Completed task: {title}",
            TransactionStatus.COMPLETED,
            make_reference("TASK"),
        )
        self._persist(account, conflict_message="Task already completed")

        ledger_logger.info(f"Account {account.id} credited {reward} for task {task_id}")
        if progress.leveled_up:
            logger.info(f"Account {account.id} reached level {account.level}")

        return {
            "reward": reward,
            "balance": account.balance,
            "level": account.level,
            "xp": account.xp,
        }

    def upgrade_to_premium(self, account_id, payment_proof) -> Dict:
        if not payment_proof:
            raise ValidationError("Transaction proof is required")
        payment_proof = check_length(str(payment_proof), "transactionProof", PROOF_LENGTH)

        account = self._load(account_id)
        if account.is_premium:
            raise ConflictError("User is already premium")

        now = utcnow()
        account.is_premium = True
        account.premium_since = now
        account.premium_expires = now + timedelta(days=self.premium_days)
        account.premium_payment_proof = payment_proof

        account.balance += self.premium_bonus
        account.total_earned += self.premium_bonus

        # The ledger records the fee paid; the balance gets the welcome bonus
        self._record(
            account,
            TransactionType.PREMIUM_PAYMENT,
            self.premium_fee,
            "Premium membership upgrade",
            TransactionStatus.COMPLETED,
            make_reference("PREMIUM"),
        )
        self._persist(account)

        ledger_logger.info(
            f"Account {account.id} upgraded to premium until {account.premium_expires.isoformat()}, "
            f"bonus {self.premium_bonus}"
        )
        return {
            "premiumExpires": account.premium_expires.isoformat(),
            "bonus": self.premium_bonus,
            "balance": account.balance,
        }

    def withdraw(self, account_id, bank_name, account_number, amount) -> Dict:
        account = self._load(account_id)

        if not account.is_premium:
            raise ForbiddenError("Upgrade to premium to unlock withdrawals")

        amount = parse_amount(amount, max_value=self.max_amount)
        if amount < self.min_withdrawal:
            raise ValidationError(f"Minimum withdrawal amount is ₦{self.min_withdrawal:,}")

        bank_name = clean_str(bank_name)
        account_number = clean_str(str(account_number)) if account_number is not None else ""
        if not bank_name or not account_number:
            raise ValidationError("Bank name and account number are required")
        check_length(bank_name, "bankName", BANK_NAME_LENGTH)
        check_length(account_number, "accountNumber", ACCOUNT_NUMBER_LENGTH)

        if account.balance < amount:
            raise InsufficientFundsError("Insufficient balance")

        account.balance -= amount
        account.total_withdrawn += amount

        reference = make_reference("WITHDRAW")
        self._record(
            account,
            TransactionType.WITHDRAWAL,
            -amount,
            f"Withdrawal to {bank_name} ({account_number})",
            TransactionStatus.PENDING,
            reference,
        )
        self._persist(account)

        ledger_logger.info(f"Account {account.id} requested withdrawal {amount} ref {reference}")
        return {"balance": account.balance, "reference": reference}

    # ------------------------------------------------------------------
    # dashboard
    # ------------------------------------------------------------------
    def get_dashboard(self, account_id) -> Dict:
        account = self._load(account_id)

        xp_needed = level_up_threshold(account.level)
        recent = sorted(
            account.transactions,
            key=lambda tx: (tx.date, tx.id or 0),
            reverse=True,
        )[:self.recent_limit]

        return {
            "user": {
                "name": account.name,
                "email": account.email,
                "balance": account.balance,
                "totalEarned": account.total_earned,
                "isPremium": account.is_premium,
                "level": account.level,
                "streak": account.streak,
                "tasksCompleted": account.tasks_completed,
                "referralCount": len(account.referrals),
            },
            "stats": {
                "successRate": compute_success_rate(account.tasks_completed),
                "xp": account.xp,
                "xpNeeded": xp_needed,
                "progressPercent": compute_progress_percent(account.xp, xp_needed),
            },
            "recentTransactions": [tx.to_dict() for tx in recent],
        }
