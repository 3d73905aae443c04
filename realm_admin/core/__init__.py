"""Core Business Logic Module

Pure Python orchestration over the Keycloak Admin API, independent of any UI.

Module Structure:
    - keycloak/               : Admin API client, credentials, enrichment, reconciliation, events
    - models.py               : Typed views over Admin API representations
    - provisioning_service.py : Create/update user workflows

Import explicitly when needed:
    from realm_admin.core.keycloak import UserDirectory, RoleService
    from realm_admin.core.provisioning_service import create_user_with_roles
"""
