"""Constants for the AWS IAM Operator."""

# API Group
API_GROUP = "aws-iam.cloud37.dev"
API_VERSION = "v1beta1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_POLICY = "Policy"
KIND_ASSUME_ROLE_POLICY = "AssumeRolePolicy"
KIND_ROLE = "Role"
KIND_USER = "User"
KIND_GROUP = "Group"
KIND_POLICY_ATTACHMENT = "PolicyAttachment"

# Plurals used by the custom objects API
PLURALS = {
    KIND_POLICY: "policies",
    KIND_ASSUME_ROLE_POLICY: "assumerolepolicies",
    KIND_ROLE: "roles",
    KIND_USER: "users",
    KIND_GROUP: "groups",
    KIND_POLICY_ATTACHMENT: "policyattachments",
}

# Attachment target types
TARGET_TYPES = (KIND_ROLE, KIND_USER, KIND_GROUP)

# Labels
LABEL_MANAGED_BY = f"{API_GROUP}/managed-by"

# Annotations
ANNOTATION_ROLE_ARN = "eks.amazonaws.com/role-arn"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Field Manager
FIELD_MANAGER = "aws-iam-operator"

# Policy documents
POLICY_VERSION = "2012-10-17"
MAX_POLICY_VERSIONS = 5

# Roles
DEFAULT_MAX_SESSION_DURATION = 3600
IRSA_ACTION = "sts:AssumeRoleWithWebIdentity"
IRSA_AUDIENCE = "sts.amazonaws.com"

# Credential secrets
LOGIN_SECRET_SUFFIX = "-login"
ACCESS_KEY_SECRET_SUFFIX = "-accesskey"
LOGIN_SECRET_USER_KEY = "username"
LOGIN_SECRET_PASSWORD_KEY = "password"
ACCESS_KEY_SECRET_ID_KEY = "access-key-id"
ACCESS_KEY_SECRET_SECRET_KEY = "secret-access-key"

# Status messages
MESSAGE_RECONCILED = "reconciled"
MESSAGE_SYNCING = "reconciling"

# Condition Types
COND_READY = "Ready"
COND_DEPENDENCY_BLOCKED = "DependencyBlocked"
COND_REFERENCES_NOT_READY = "ReferencesNotReady"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_SUCCEEDED = "ReconcileSucceeded"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_REMOTE_CREATED = "RemoteCreated"
EVENT_REASON_REMOTE_UPDATED = "RemoteUpdated"
EVENT_REASON_REMOTE_DELETED = "RemoteDeleted"
EVENT_REASON_DELETION_BLOCKED = "DeletionBlocked"
EVENT_REASON_REFERENCES_NOT_READY = "ReferencesNotReady"
