"""
Switchyard CLI.

Usage:
    switchyard routes app:server
    switchyard serve app:server --port 8080

TARGET is ``module:attribute`` naming a ``SwitchyardServer`` (or a
zero-argument callable returning one).
"""

__cli_name__ = "switchyard"
