"""Shared tool definitions for the examples."""

import ast
import json
import operator

from pydantic import Field

from react_loop import Tool, ToolInput

_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.USub: operator.neg,
}


def _evaluate(node):
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _OPERATORS:
        return _OPERATORS[type(node.op)](_evaluate(node.left), _evaluate(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _OPERATORS:
        return _OPERATORS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"Unsupported expression: {ast.dump(node)}")


class CalculatorInput(ToolInput):
    """Input model for the calculator tool."""

    expression: str = Field(
        ...,
        description="A mathematical expression to evaluate (e.g., '2 + 2', '10 * 5')",
    )


class CalculatorTool(Tool):
    """Evaluates arithmetic expressions without eval()."""

    name = "calculator"
    description = (
        "Evaluates mathematical expressions and returns the result. "
        "Supports basic operations: +, -, *, /, **, //, %"
    )
    input_model = CalculatorInput

    async def execute(self, expression: str) -> str:
        # errors propagate; the agent turns them into an observation
        result = _evaluate(ast.parse(expression, mode="eval"))
        return json.dumps({"expression": expression, "result": result})


class WebSearchInput(ToolInput):
    """Input model for the web search tool."""

    query: str = Field(..., description="Search query (e.g., 'weather in Lisbon')")


class WebSearchTool(Tool):
    """Simulated web search. Returns canned snippets."""

    name = "web_search"
    description = "Searches the web and returns the top results as JSON."
    input_model = WebSearchInput

    async def execute(self, query: str) -> str:
        if "weather" in query.lower():
            snippet = "Lisbon weather: sunny, 24°C, light wind"
        else:
            snippet = f"Mock search result for query: {query}"
        return json.dumps(
            [{"title": f"Search results for: {query}", "url": "https://search.example.com", "snippet": snippet}],
            ensure_ascii=False,
        )
