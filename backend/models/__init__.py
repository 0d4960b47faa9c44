"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  LeadsFlow CRM - Models Package                                              ║
║                                                                              ║
║  from models import LeadCreate, UserCreate, SetupCompleteRequest, etc.       ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# ==================== SETUP ====================
from .setup import (
    PRODUCT_ID,
    EncryptedConfig,
    LicenseData,
    LicenseValidationResult,
    ConnectionTestRequest,
    ValidateLicenseRequest,
    SetupCompleteRequest,
)

# ==================== AUTH / USERS ====================
from .auth import (
    VALID_ROLES,
    UserLogin,
    UserCreate,
    UserUpdate,
    ChangePassword,
    EmailCodeRequest,
    EmailCodeVerify,
    WhatsAppCodeRequest,
    WhatsAppCodeVerify,
)

# ==================== LEADS ====================
from .lead import (
    VALID_LEAD_TYPES,
    VALID_PRIORITIES,
    LeadCreate,
    LeadUpdate,
    LeadBulkImport,
    NoteCreate,
    FollowUpCreate,
    FollowUpUpdate,
)

# ==================== CONFIG ====================
from .config import (
    PipelineStageCreate,
    LeadSourceCreate,
    LeadStatusCreate,
    SystemSettingsUpdate,
    EmailAuthConfigUpdate,
    WhatsAppAuthConfigUpdate,
)
