"""MFI Index MCP App Server.

Rank food brands on the Micronutrient Fortification Index — weighted SAT,
product testing and IEG scores combined into one composite score, with
fortification bands and SAT variance analysis.
"""

__version__ = "0.1.0"


def get_app_html() -> str:
    """Return the MCP App HTML content. Re-renders each call for hot reload."""
    from .app_definition import MFIIndexApp

    return MFIIndexApp().render()
