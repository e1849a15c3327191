#!/usr/bin/env python3
"""
CRM Insights Engine MCP Server

Exposes forecasting, anomaly detection and correlation analysis as MCP tools
over stdio. Every response is a single text block holding the camelCase JSON
of the analysis result, or an error object.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import BaseModel, ValidationError

from .config.settings import LogFormat, Settings, get_settings
from .exceptions import AnalyticsError
from .models.data_models import (
    BaselineMethod,
    MetricSeries,
    SUPPORTED_CONFIDENCE_LEVELS,
    TimeSeriesPoint,
)
from .utils.analytics_engine import AnalyticsEngine, create_analytics_engine

logger = structlog.get_logger(__name__)

# Initialize MCP Server
server = Server("crm-insights-engine")

# Engine used by the tool handlers; created in main()
_engine: Optional[AnalyticsEngine] = None


def configure_logging(settings: Settings) -> None:
    """Configure structlog on top of stdlib logging

    Logs go to stderr; stdout carries the MCP protocol.
    """
    level = getattr(logging, settings.log_level.value)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)

    if settings.log_format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


SERIES_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "date": {"type": "string", "format": "date"},
            "value": {"type": "number"},
            "label": {"type": "string"}
        },
        "required": ["date", "value"]
    },
    "description": "Dated observations in chronological order"
}

ANNOTATE_SCHEMA = {
    "type": "boolean",
    "default": True,
    "description": "Attach AI commentary when narrative annotation is configured"
}

# Tool definitions following MCP protocol
TOOL_DEFINITIONS = [
    Tool(
        name="generate_forecast",
        description="Project a metric forward with linear regression, seasonal adjustment and confidence bands",
        inputSchema={
            "type": "object",
            "properties": {
                "series": SERIES_SCHEMA,
                "horizon": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Number of future periods to predict"
                },
                "confidence_levels": {
                    "type": "array",
                    "items": {"type": "number", "enum": list(SUPPORTED_CONFIDENCE_LEVELS)},
                    "description": "Band levels per prediction (optional)"
                },
                "include_seasonality": {
                    "type": "boolean",
                    "description": "Apply detected seasonal adjustment (optional)"
                },
                "annotate": ANNOTATE_SCHEMA
            },
            "required": ["series", "horizon"]
        }
    ),
    Tool(
        name="detect_anomalies",
        description="Flag historical points that deviate strongly from the series baseline",
        inputSchema={
            "type": "object",
            "properties": {
                "series": SERIES_SCHEMA,
                "threshold": {
                    "type": "number",
                    "exclusiveMinimum": 0,
                    "description": "|z| at or above which a point is flagged (optional)"
                },
                "baseline": {
                    "type": "string",
                    "enum": [method.value for method in BaselineMethod],
                    "description": "Expected-value baseline (optional)"
                },
                "annotate": ANNOTATE_SCHEMA
            },
            "required": ["series"]
        }
    ),
    Tool(
        name="find_correlations",
        description="Rank pairwise Pearson correlations between index-aligned metrics",
        inputSchema={
            "type": "object",
            "properties": {
                "metrics": {
                    "type": "array",
                    "minItems": 2,
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "points": SERIES_SCHEMA,
                            "cumulative": {"type": "boolean"}
                        },
                        "required": ["name", "points"]
                    },
                    "description": "Metrics to compare, all with the same dates"
                },
                "min_coefficient": {
                    "type": "number",
                    "minimum": 0,
                    "maximum": 1,
                    "description": "Smallest |r| reported (optional)"
                },
                "annotate": ANNOTATE_SCHEMA
            },
            "required": ["metrics"]
        }
    ),
]


def get_engine() -> AnalyticsEngine:
    """Engine for tool calls; a plain, unannotated engine until main() runs"""
    global _engine
    if _engine is None:
        _engine = AnalyticsEngine(settings=get_settings())
    return _engine


def set_engine(engine: Optional[AnalyticsEngine]) -> None:
    global _engine
    _engine = engine


def _with_overrides(defaults: BaseModel, arguments: Dict[str, Any], keys: Sequence[str]):
    overrides = {key: arguments[key] for key in keys if arguments.get(key) is not None}
    if not overrides:
        return defaults
    return type(defaults).model_validate({**defaults.model_dump(), **overrides})


def _parse_series(raw: Any) -> List[TimeSeriesPoint]:
    return [TimeSeriesPoint.model_validate(point) for point in raw or []]


def _text(payload: Dict[str, Any]) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2, default=str))]


def _error(code: str, message: str, details: Any = None) -> List[TextContent]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return _text({"error": error})


async def dispatch_tool(engine: AnalyticsEngine, name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Run one tool call against an engine"""
    annotate = bool(arguments.get("annotate", True))

    if name == "generate_forecast":
        options = _with_overrides(
            engine.settings.forecast.to_options(), arguments, ("confidence_levels", "include_seasonality")
        )
        result = await engine.analyze_forecast(
            _parse_series(arguments.get("series")), int(arguments.get("horizon", 0)), options, annotate=annotate
        )

    elif name == "detect_anomalies":
        options = _with_overrides(
            engine.settings.anomaly.to_options(), arguments, ("threshold", "baseline")
        )
        result = await engine.analyze_anomalies(
            _parse_series(arguments.get("series")), options, annotate=annotate
        )

    elif name == "find_correlations":
        options = _with_overrides(
            engine.settings.correlation.to_options(), arguments, ("min_coefficient",)
        )
        metrics = [MetricSeries.model_validate(metric) for metric in arguments.get("metrics") or []]
        result = await engine.analyze_correlations(metrics, options, annotate=annotate)

    else:
        logger.error("Unknown tool called", tool_name=name)
        return _error("UnknownTool", f"Unknown tool: {name}")

    return _text(result.to_json_dict())


@server.list_tools()
async def handle_list_tools() -> List[Tool]:
    """List all available tools."""
    logger.info("Listing available tools", tool_count=len(TOOL_DEFINITIONS))
    return TOOL_DEFINITIONS


@server.call_tool()
async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> Sequence[TextContent]:
    """Handle tool calls with proper MCP protocol compliance."""
    logger.info("Tool called", tool_name=name)

    try:
        return await dispatch_tool(get_engine(), name, arguments or {})

    except AnalyticsError as e:
        logger.warning("Analysis rejected", tool_name=name, code=e.code.value, error=e.message)
        return _text({"error": e.to_dict()})

    except ValidationError as e:
        logger.warning("Invalid tool arguments", tool_name=name, errors=e.error_count())
        return _error(
            "InvalidArguments",
            "Tool arguments failed validation",
            e.errors(include_url=False, include_context=False),
        )

    except (TypeError, ValueError) as e:
        logger.warning("Invalid tool arguments", tool_name=name, error=str(e))
        return _error("InvalidArguments", str(e))

    except Exception as e:
        logger.error("Tool execution failed", tool_name=name, error=str(e))
        return _error("InternalError", f"Tool execution failed: {str(e)}")


async def main():
    """Main entry point for the MCP server."""
    settings = get_settings()
    configure_logging(settings)
    logger.info("Starting CRM Insights Engine MCP Server", version=settings.app_version)

    engine = create_analytics_engine(settings)
    set_engine(engine)

    try:
        async with engine:
            # Run the server using stdio transport
            async with stdio_server() as (read_stream, write_stream):
                await server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options()
                )
    except Exception as e:
        logger.error("Server failed", error=str(e))
        raise
    finally:
        set_engine(None)


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
