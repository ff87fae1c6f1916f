"""Host adapter package.

Architectural role:
- Defines the external interaction boundary for HTTP and CLI hosts.
- Performs transport-level parsing and response shaping.
- Delegates operation work to `modelscope_node.operations.registry`.
"""
