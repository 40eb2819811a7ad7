# models.py: Flask-SQLAlchemy models for accounts and their ledger
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import UniqueConstraint, Index
from extensions import db
from werkzeug.security import check_password_hash, generate_password_hash


def utcnow():
    """Naive UTC timestamp, matching what sqlite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() if value else None


# Column sizes; longer input is rejected with a ValidationError before any write
NAME_LENGTH = 120
EMAIL_LENGTH = 120
PHONE_LENGTH = 20
TASK_ID_LENGTH = 64
TITLE_LENGTH = 200
DESCRIPTION_LENGTH = 255
PROOF_LENGTH = 255
BANK_NAME_LENGTH = 100
ACCOUNT_NUMBER_LENGTH = 34

# ===========================================================
# ENUM DEFINITIONS
# ===========================================================

class TransactionType(Enum):
    TASK = "task"
    BONUS = "bonus"
    WITHDRAWAL = "withdrawal"
    PREMIUM_PAYMENT = "premium_payment"
    REFERRAL = "referral"


class TransactionStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# ===========================================================
# BASE MIXIN FOR COMMON FIELDS
# ===========================================================

class BaseMixin:
    """Provides created_at and updated_at timestamps to inheriting models."""
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

# ===========================================================
# ACCOUNT
# ===========================================================

class Account(db.Model, BaseMixin):
    """Single aggregate root with ledger, progression and premium state of one user."""
    __tablename__ = 'accounts'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(NAME_LENGTH), nullable=False)
    email = db.Column(db.String(EMAIL_LENGTH), unique=True, nullable=False)
    phone = db.Column(db.String(PHONE_LENGTH), nullable=False)

    # Credential
    password_hash = db.Column(db.String(255), nullable=False)
    last_password_change = db.Column(db.DateTime, default=utcnow)

    # Referral system
    referral_code = db.Column(db.String(20), nullable=False)
    referred_by = db.Column(db.String(20), nullable=True)
    referral_count = db.Column(db.Integer, default=0, nullable=False)

    # Ledger
    balance = db.Column(db.BigInteger, default=0, nullable=False)
    total_earned = db.Column(db.BigInteger, default=0, nullable=False)
    total_withdrawn = db.Column(db.BigInteger, default=0, nullable=False)

    # Premium
    is_premium = db.Column(db.Boolean, default=False, nullable=False)
    premium_since = db.Column(db.DateTime, nullable=True)
    premium_expires = db.Column(db.DateTime, nullable=True)
    premium_payment_proof = db.Column(db.String(PROOF_LENGTH), nullable=True)

    # Progress tracking
    level = db.Column(db.Integer, default=1, nullable=False)
    xp = db.Column(db.Integer, default=0, nullable=False)
    streak = db.Column(db.Integer, default=1, nullable=False)
    tasks_completed = db.Column(db.Integer, default=0, nullable=False)
    last_login = db.Column(db.DateTime, default=utcnow)

    # Security
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)

    # Settings
    notifications = db.Column(db.Boolean, default=True, nullable=False)
    auto_start_tasks = db.Column(db.Boolean, default=False, nullable=False)
    two_factor_auth = db.Column(db.Boolean, default=False, nullable=False)

    # WhatsApp integration
    whatsapp_group_joined = db.Column(db.Boolean, default=False, nullable=False)
    last_group_join = db.Column(db.DateTime, nullable=True)
    group_joins = db.Column(db.Integer, default=0, nullable=False)

    # Relationships
    transactions = db.relationship(
        'AccountTransaction',
        back_populates='account',
        cascade="all, delete-orphan",
        order_by='AccountTransaction.id'
    )
    completed_tasks = db.relationship(
        'CompletedTask',
        back_populates='account',
        cascade="all, delete-orphan",
        order_by='CompletedTask.id'
    )
    referrals = db.relationship(
        'ReferralRecord',
        back_populates='account',
        cascade="all, delete-orphan",
        order_by='ReferralRecord.id'
    )

    __table_args__ = (
        Index('idx_account_email', 'email'),
    )

    # Flask-Login reads these; is_active is a real column here
    @property
    def is_authenticated(self):
        return True

    @property
    def is_anonymous(self):
        return False

    def get_id(self):
        return str(self.id)

    # ------------------------------------------------------------------
    # Account store
    # ------------------------------------------------------------------
    @classmethod
    def find_by_email(cls, email):
        return cls.query.filter_by(email=email).first()

    @classmethod
    def find_by_id(cls, account_id):
        try:
            return db.session.get(cls, int(account_id))
        except (TypeError, ValueError):
            return None

    def save(self):
        """Persist the whole record, refreshing updated_at."""
        self.updated_at = utcnow()
        db.session.add(self)
        db.session.commit()
        return self

    # ------------------------------------------------------------------
    # Credential
    # ------------------------------------------------------------------
    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not password:
            return False
        return check_password_hash(self.password_hash, password)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------
    SETTINGS_FIELDS = {
        "notifications": "notifications",
        "autoStartTasks": "auto_start_tasks",
        "twoFactorAuth": "two_factor_auth",
    }

    @property
    def settings(self):
        return {key: getattr(self, attr) for key, attr in self.SETTINGS_FIELDS.items()}

    def has_completed(self, task_id) -> bool:
        return any(task.task_id == task_id for task in self.completed_tasks)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_summary(self):
        """Short form returned with a fresh token."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "balance": self.balance,
            "isPremium": self.is_premium,
            "level": self.level,
            "streak": self.streak,
            "tasksCompleted": self.tasks_completed,
            "totalEarned": self.total_earned,
        }

    def to_dict(self):
        """Profile view; never includes the password hash, ledger or task list."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "referralCode": self.referral_code,
            "referredBy": self.referred_by,
            "referrals": [ref.to_dict() for ref in self.referrals],
            "referralCount": self.referral_count,
            "balance": self.balance,
            "totalEarned": self.total_earned,
            "totalWithdrawn": self.total_withdrawn,
            "isPremium": self.is_premium,
            "premiumSince": isoformat(self.premium_since),
            "premiumExpires": isoformat(self.premium_expires),
            "level": self.level,
            "xp": self.xp,
            "streak": self.streak,
            "lastLogin": isoformat(self.last_login),
            "tasksCompleted": self.tasks_completed,
            "isActive": self.is_active,
            "isVerified": self.is_verified,
            "lastPasswordChange": isoformat(self.last_password_change),
            "settings": self.settings,
            "whatsappGroupJoined": self.whatsapp_group_joined,
            "lastGroupJoin": isoformat(self.last_group_join),
            "groupJoins": self.group_joins,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Account {self.id} {self.email}>"

# ===========================================================
# LEDGER, TASKS & REFERRALS
# ===========================================================

class AccountTransaction(db.Model):
    __tablename__ = 'account_transactions'

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(30), nullable=False)  # task, bonus, withdrawal, premium_payment, referral
    amount = db.Column(db.BigInteger, nullable=False)
    description = db.Column(db.String(DESCRIPTION_LENGTH))
    date = db.Column(db.DateTime, default=utcnow, nullable=False)
    status = db.Column(db.String(20), default=TransactionStatus.COMPLETED.value, nullable=False)
    reference = db.Column(db.String(120), nullable=True, index=True)

    account = db.relationship('Account', back_populates='transactions')

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "amount": self.amount,
            "description": self.description,
            "date": isoformat(self.date),
            "status": self.status,
            "reference": self.reference,
        }


class CompletedTask(db.Model):
    __tablename__ = 'completed_tasks'

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False, index=True)
    task_id = db.Column(db.String(TASK_ID_LENGTH), nullable=False)
    title = db.Column(db.String(TITLE_LENGTH))
    reward = db.Column(db.BigInteger, nullable=False)
    completed_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    account = db.relationship('Account', back_populates='completed_tasks')

    __table_args__ = (
        UniqueConstraint('account_id', 'task_id', name='uq_completed_task_per_account'),
    )

    def to_dict(self):
        return {
            "taskId": self.task_id,
            "title": self.title,
            "reward": self.reward,
            "completedAt": isoformat(self.completed_at),
        }


class ReferralRecord(db.Model):
    __tablename__ = 'referral_records'

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False, index=True)
    referred_user_id = db.Column(db.Integer, nullable=True)
    name = db.Column(db.String(120))
    email = db.Column(db.String(120))
    date = db.Column(db.DateTime, default=utcnow)

    account = db.relationship('Account', back_populates='referrals')

    def to_dict(self):
        return {
            "userId": self.referred_user_id,
            "name": self.name,
            "email": self.email,
            "date": isoformat(self.date),
        }
