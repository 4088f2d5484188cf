"""Configuration module for Patchbay MCP.

- SSHConfigParser: Parses ~/.ssh/config files
- Settings: Environment variable configuration
"""

from patchbay_mcp.config.parser import SSHConfigParser
from patchbay_mcp.config.settings import Settings

__all__ = ["SSHConfigParser", "Settings"]
