"""
Home Assistant MCP tools
Automation, entity, scene, schedule and helper management over MCP
"""

__version__ = "1.0.0"
