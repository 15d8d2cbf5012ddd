"""Central names for roles and permissions to avoid typos in gate checks.
Extend cautiously; never rename names silently, add a new one and retire the old one via migration.
"""
from __future__ import annotations
from typing import Dict, List

# --- Roles (workflow gating is by these names) ---
ROLE_ADMIN = 'Admin'
ROLE_REQUESTOR = 'Requestor'
ROLE_MANAGER = 'Manager'
ROLE_ACCOUNTANT = 'Accountant'
ROLE_RECIPIENT = 'Recipient'
ROLE_RECIPIENT_MANAGER = 'RecipientManager'
ROLE_FINANCE_CONTROLLER = 'FinanceController'

# Approver roles; members may see every transfer.
WORKFLOW_ROLES = frozenset({
    ROLE_MANAGER, ROLE_ACCOUNTANT, ROLE_RECIPIENT_MANAGER, ROLE_FINANCE_CONTROLLER,
})

ROLE_DESCRIPTIONS: Dict[str, str] = {
    ROLE_ADMIN: 'Administrator with full access',
    ROLE_REQUESTOR: 'Employee who can request asset transfers',
    ROLE_MANAGER: 'Department manager who approves requests',
    ROLE_ACCOUNTANT: 'Accountant who updates financial details',
    ROLE_RECIPIENT: 'Recipient of transferred asset',
    ROLE_RECIPIENT_MANAGER: "Recipient's manager",
    ROLE_FINANCE_CONTROLLER: 'Finance controller/manager',
}

# --- Permission catalog ---
VIEW_ASSETS = 'ViewAssets'
CREATE_ASSET = 'CreateAsset'
EDIT_ASSET = 'EditAsset'
DELETE_ASSET = 'DeleteAsset'
SUBMIT_ASSET = 'SubmitAsset'
APPROVE_MANAGER = 'ApproveManager'
UPDATE_FINANCIALS = 'UpdateFinancials'
APPROVE_RECIPIENT = 'ApproveRecipient'
APPROVE_RECIPIENT_MANAGER = 'ApproveRecipientManager'
APPROVE_FINANCE = 'ApproveFinance'
MANAGE_USERS = 'ManageUsers'
MANAGE_ROLES = 'ManageRoles'

PERMISSION_CATALOG: Dict[str, str] = {
    VIEW_ASSETS: 'View asset transfers',
    CREATE_ASSET: 'Create asset transfer requests',
    EDIT_ASSET: 'Edit asset transfer requests',
    DELETE_ASSET: 'Delete asset transfer requests',
    SUBMIT_ASSET: 'Submit asset transfer requests',
    APPROVE_MANAGER: 'Approve as manager',
    UPDATE_FINANCIALS: 'Update financial details',
    APPROVE_RECIPIENT: 'Approve as recipient',
    APPROVE_RECIPIENT_MANAGER: 'Approve as recipient manager',
    APPROVE_FINANCE: 'Approve as finance controller',
    MANAGE_USERS: 'Manage users',
    MANAGE_ROLES: 'Manage roles and permissions',
}

ALL_PERMISSION_NAMES: List[str] = list(PERMISSION_CATALOG)

# Default composition; '*' expands to the whole catalog.
ROLE_PRESETS: Dict[str, List[str]] = {
    ROLE_ADMIN: ['*'],
    ROLE_REQUESTOR: [VIEW_ASSETS, CREATE_ASSET, EDIT_ASSET, DELETE_ASSET, SUBMIT_ASSET],
    ROLE_MANAGER: [VIEW_ASSETS, APPROVE_MANAGER],
    ROLE_ACCOUNTANT: [VIEW_ASSETS, UPDATE_FINANCIALS],
    ROLE_RECIPIENT: [VIEW_ASSETS, APPROVE_RECIPIENT],
    ROLE_RECIPIENT_MANAGER: [VIEW_ASSETS, APPROVE_RECIPIENT_MANAGER],
    ROLE_FINANCE_CONTROLLER: [VIEW_ASSETS, APPROVE_FINANCE],
}


def expand_preset(role_name: str) -> List[str]:
    names = ROLE_PRESETS.get(role_name, [])
    if '*' in names:
        return list(ALL_PERMISSION_NAMES)
    return list(names)
