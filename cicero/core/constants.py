"""Global constants for the cicero application."""

# Collection names
GROUPS_COLLECTION = "groups"
MEMBERS_COLLECTION = "members"
USERS_COLLECTION = "users"

# Fields on 'groups' documents
GROUP_NAME = "name"
GROUP_DESCRIPTION = "description"
GROUP_OWNER_ID = "ownerId"
GROUP_IMAGE_URL = "imageURL"
GROUP_CREATED_AT = "createdAt"
GROUP_ORIGINAL_ID = "originalId"

# Fields on 'members' documents
MEMBER_USER_ID = "userId"
MEMBER_GROUP_ID = "groupId"
MEMBER_ROLE = "role"
MEMBER_JOINED_AT = "joinedAt"

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"

# Fields on 'users' documents
USER_NAME = "name"
USER_EMAIL = "email"
USER_PROFILE_IMAGE_URL = "profileImageURL"

# Group ids are short shareable codes
GROUP_ID_LENGTH = 6
GROUP_ID_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
GROUP_ID_MAX_ATTEMPTS = 5

# Firestore limits
FIRESTORE_BATCH_LIMIT = 400
FIRESTORE_IN_QUERY_LIMIT = 10

# Group images
GROUP_IMAGE_PATH = "groupImages/{group_id}.jpg"
GROUP_IMAGE_CONTENT_TYPE = "image/jpeg"
GROUP_IMAGE_QUALITY = 75
GROUP_IMAGE_MAX_SIZE = (500, 500)

# Client defaults
DEFAULT_REQUEST_TIMEOUT = 20.0
DEFAULT_EDIT_DEBOUNCE = 0.5
DEFAULT_MAX_WORKERS = 8

# Callable function names
JOIN_GROUP_FUNCTION = "joinGroup"
DELETE_GROUP_FUNCTION = "deleteGroup"

# Earlier schema: group documents carried a {userId: true} map
LEGACY_MEMBERS_FIELD = "members"
