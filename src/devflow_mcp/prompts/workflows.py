"""
Workflow prompts for devflow-mcp.

Provides MCP prompts that walk an assistant through the smart_* tool
sequence: starting a project end to end, and reviewing code quality.
"""

import logging
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from devflow_mcp.config import ServerConfig

logger = logging.getLogger(__name__)


def _format_stack(tech_stack: Optional[str]) -> List[str]:
    if not tech_stack:
        return []
    return [part.strip() for part in tech_stack.split(",") if part.strip()]


def register_workflow_prompts(mcp: FastMCP, config: ServerConfig) -> None:
    """
    Register workflow prompts with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        config: Server configuration
    """

    @mcp.prompt()
    def start_project(project_name: str, tech_stack: Optional[str] = None) -> str:
        """
        Start a new project from scratch.

        Args:
            project_name: Name of the project to create
            tech_stack: Comma-separated technologies (e.g. "python, react")

        Returns:
            Formatted prompt covering begin, plan, write and finish
        """
        stack = _format_stack(tech_stack)
        stack_json = "[" + ", ".join(f'"{item}"' for item in stack) + "]"

        prompt_parts = [
            f"# Start Project: {project_name}",
            "",
            "## Overview",
            f"Project Name: {project_name}",
            f"Technology Stack: {', '.join(stack) if stack else 'Not specified'}",
            "",
            "## Instructions",
            "",
            "### Step 1: Initialize",
            f'Call `smart_begin` with `projectName="{project_name}"` and `techStack={stack_json}`.',
            "Note the returned `projectId`; every later step needs it.",
            "",
            "### Step 2: Plan",
            "Call `smart_plan` with the `projectId` and the features in scope.",
            "Review the phases, budget breakdown and risks before continuing.",
            "",
            "### Step 3: Write Code",
            "For each feature, call `smart_write` with a one-sentence `featureDescription`.",
            "Collect the `codeId` from every response.",
            "",
            "### Step 4: Validate",
            "Call `smart_finish` with the `projectId` and all collected `codeIds`.",
            "If the overall status is not `pass`, work through the recommendations and",
            "validate again.",
            "",
            "## Available Tools",
            "- `smart_orchestrate`: run the whole workflow for a single request",
            "- `workflow` (action=`preview`): inspect phases before orchestrating",
        ]

        return "\n".join(prompt_parts)

    @mcp.prompt()
    def review_quality(project_id: str, code_ids: Optional[str] = None) -> str:
        """
        Review code quality for a project.

        Args:
            project_id: Project identifier returned by smart_begin
            code_ids: Optional comma-separated code identifiers from smart_write

        Returns:
            Formatted prompt for a smart_finish quality review
        """
        ids = _format_stack(code_ids)

        prompt_parts = [
            f"# Quality Review: {project_id}",
            "",
            "## Code Units",
        ]
        if ids:
            prompt_parts.extend(f"- `{code_id}`" for code_id in ids)
        else:
            prompt_parts.append("No code units given; use the `codeId` values from `smart_write`.")

        prompt_parts.extend([
            "",
            "## Review Workflow",
            "",
            "### Step 1: Run the Scorecard",
            f'Call `smart_finish` with `projectId="{project_id}"` and the code units above.',
            "",
            "### Step 2: Read the Gates",
            "- Quality gates: test coverage, security, complexity, maintainability",
            "- Business checks: cost prevention, time saved, user satisfaction",
            "- Production checks: security scan, performance, documentation, deployment",
            "",
            "### Step 3: Act on the Result",
            "- **pass**: follow the deployment next steps",
            "- **fail**: address each failing gate, then run the scorecard again",
        ])

        return "\n".join(prompt_parts)

    logger.debug("Registered workflow prompts for %s", config.server_name)
