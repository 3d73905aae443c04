"""Realm admin client package.

To use the Admin API services:
    from realm_admin.core.keycloak import AdminApiClient, CredentialManager, UserDirectory

To use the create/update workflows:
    from realm_admin.core.provisioning_service import create_user_with_roles, update_user
"""
