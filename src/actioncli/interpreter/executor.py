"""Sequential step executor.

:func:`execute_action` runs an action's steps strictly in order on one
shared :class:`httpx.AsyncClient`, recording each result in the
:class:`~actioncli.interpreter.environment.Environment` before the next
step's expressions are resolved. The first failure stops the action; no
later step runs and nothing is rendered.

Execution is bounded by the awaiting task: cancelling it aborts the
in-flight request, which surfaces as a
:class:`~actioncli.exceptions.StepExecutionError` naming that step.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from actioncli.engine.policy import output_data_expression
from actioncli.exceptions import RenderError, StepExecutionError
from actioncli.interpreter.environment import Environment
from actioncli.models import Action, Output, RenderFormat
from actioncli.output import debug
from actioncli.runtime import RenderFailure, StepFailure, http_step, render_json, render_table, render_text


def render_output(output: Output, data: Any) -> str:
    """Render *data* in the format *output* declares.

    Raises:
        RenderError: When the data does not fit the format.
    """
    try:
        if output.format == RenderFormat.JSON:
            return render_json(data)
        if output.format == RenderFormat.TABLE:
            return render_table(data, output.columns)
        if output.format == RenderFormat.TEXT:
            return render_text(data)
    except RenderFailure as exc:
        raise RenderError(str(exc)) from exc
    raise RenderError(f"unknown output format {output.format!r}")


async def execute_action(
    action: Action,
    env: Environment,
    client: httpx.AsyncClient,
    where: str = "",
) -> Optional[str]:
    """Execute *action* and return its rendered output.

    Args:
        action: The action to run.
        env: Seeded environment; step results are recorded into it.
        client: HTTP client shared by every step.
        where: Command path used in reference error locations.

    Returns:
        The rendered text, or ``None`` when the action declares no output.

    Raises:
        ReferenceError_: When an expression names an unknown flag, argument,
            or step (including one that has not run yet).
        StepExecutionError: When a step fails or is cancelled.
        RenderError: When the output data does not fit the format.
    """
    for step in action.steps:
        at = f'command "{where}", step "{step.name}"'
        url = env.evaluate(step.url, f"{at}, field url")
        headers = env.evaluate(step.headers, f"{at}, field headers") if step.headers is not None else None
        body = env.evaluate(step.body, f"{at}, field body") if step.body is not None else None

        debug(f"step {step.name}: {step.method.value} {url}")
        try:
            result = await http_step(step.name, client, step.method.value, url, headers, body)
        except StepFailure as exc:
            raise StepExecutionError(exc.step, exc.cause) from exc
        debug(f"step {step.name}: HTTP {result['status']}")
        env.record(step.name, result)

    if action.output is None:
        return None
    data_expr = output_data_expression(action)
    data = env.evaluate(data_expr, f'command "{where}", output data') if data_expr is not None else None
    return render_output(action.output, data)
