"""Core Keystone client logic.

Module Structure:
    - keystone/ : Keystone v2/v3 client, services, entities and normalization

Public APIs:
    Keystone Client (keystone_client.core.keystone):
        - KeystoneClient (configuration + single-call dispatch)
        - TokenService, ProjectService, RoleService, MetaService
        - DefaultMangler / PassthroughMangler (response normalization)
        - get_token() standalone helper
"""
