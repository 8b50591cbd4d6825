"""MFI Index MCP App — pure Python config, no custom JS/CSS."""

from mcpbundles_app_ui import App, Card, DarkTheme


class MFIIndexApp(App):
    """Interactive MFI dashboard — rankings, variance, 4PG and banding tabs."""

    name = "MFI Index"
    subtitle = "Micronutrient Fortification Index rankings by brand"
    theme = DarkTheme(
        accent="#526cdb",
        bg_page="#14132f",
        bg_card="#2c2a64",
        bg_hover="#3a3878",
        text_primary="#f1f5f9",
        text_secondary="#e2e8f0",
        text_muted="#a5b4fc",
        border="#4338ca",
        success="#10b981",
        warning="#f59e0b",
        error="#ef4444",
        chart_colors=["#526cdb", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6"],
    )

    layout = [Card(title="")]

    tool_name = "mfi_index_rankings"
    tabs = [
        {"id": "index", "label": "MFI Index", "tool": "mfi_index_rankings", "type": "dashboard", "needsArgs": True,
         "promptTitle": "Rank brands for a scoring cycle", "promptHint": "Ask your AI \u2014 e.g., \"show the MFI index for cycle 3\""},
        {"id": "variance", "label": "SAT Variance", "tool": "mfi_sat_variance", "type": "dashboard", "needsArgs": True},
        {"id": "fourpg", "label": "4PG Ranking", "tool": "mfi_4pg_ranking", "type": "dashboard", "needsArgs": True},
        {"id": "bands", "label": "Bandings", "tool": "mfi_classify_band", "type": "dashboard", "needsArgs": True},
        {"id": "tools", "label": "Tools", "tool": None, "type": "tools"},
    ]
    footer_text = "SAT 60% · Product Testing 20% · IEG 20%"

    tool_catalog_intro = (
        "Rankings are recomputed from live backend data on every call. "
        "Pass a <code>cycle_id</code> to select the scoring cycle."
    )
    tool_catalog = [
        {"name": "mfi_index_rankings", "label": "Index Rankings", "icon": "\U0001f3c6", "desc": "Ranked brands by final MFI score with summary metrics.", "usage": 'mfi_index_rankings(cycle_id="3")', "source": "MFI API"},
        {"name": "mfi_index_export", "label": "Export Rankings", "icon": "\U0001f4c4", "desc": "Ranking table as CSV.", "usage": 'mfi_index_export(cycle_id="3")', "source": "MFI API"},
        {"name": "mfi_sat_variance", "label": "SAT Variance", "icon": "⚖️", "desc": "Self-reported vs. validated SAT scores with outlier flags.", "usage": 'mfi_sat_variance(cycle_id="3", threshold=5)', "source": "MFI API"},
        {"name": "mfi_classify_band", "label": "Fortification Band", "icon": "\U0001f9ea", "desc": "Fortification descriptor for a set of compliance percentages.", "usage": "mfi_classify_band(percentages=[100, 85])", "source": "Local"},
        {"name": "mfi_4pg_ranking", "label": "4PG Ranking", "icon": "\U0001f4ca", "desc": "Companies ranked on the five 4PG components with awards and top performers.", "usage": 'mfi_4pg_ranking(cycle_id="3", award="Overall Excellence")', "source": "MFI API"},
        {"name": "mfi_4pg_export", "label": "Export 4PG", "icon": "\U0001f4c4", "desc": "4PG table or top performers as CSV.", "usage": 'mfi_4pg_export(cycle_id="3", kind="top_performers")', "source": "MFI API"},
        {"name": "mfi_dashboard", "label": "Dashboard", "icon": "\U0001f4cb", "desc": "Headline metrics from every panel in one call.", "usage": 'mfi_dashboard(cycle_id="3")', "source": "MFI API"},
    ]
