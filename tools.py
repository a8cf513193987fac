# tools.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, Field, ValidationError

import planner
from command_safety import classify, dry_run_required
from executor import CommandExecutor
from models import CommandDescriptor, OrchestrationResult, RiskVerdict
from orchestrator import CommandOrchestrator
from providers.dry_run_executor import DryRunExecutor
from system_detect import SystemDetector

logger = logging.getLogger(__name__)


class ToolError(Exception):
    pass


class InstallPackageParams(BaseModel):
    packages: List[str] = Field(..., description="List of packages to install")
    update_first: bool = Field(False, description="Update package lists before installation")


class RemovePackageParams(BaseModel):
    packages: List[str] = Field(..., description="List of packages to remove")
    purge: bool = Field(False, description="Remove configuration files (where supported)")


class SystemInfoParams(BaseModel):
    pass


class ExecuteCommandParams(BaseModel):
    command: str = Field(..., description="Command to execute")
    args: List[str] = Field(default_factory=list, description="Command arguments")
    working_dir: Optional[str] = Field(None, description="Working directory for command execution")
    timeout: int = Field(30000, description="Timeout in milliseconds")


class ManageServiceParams(BaseModel):
    service: str = Field(..., description="Service name")
    action: Literal["start", "stop", "restart", "status", "enable", "disable"]


class CleanupFilters(BaseModel):
    extensions: List[str] = Field(default_factory=list, description='File extensions to target (e.g., ["tmp", "log"])')
    age_in_days: Optional[int] = Field(None, description="Only process files older than this many days")
    size_limit: Optional[str] = Field(None, description='Only process files larger than this size (e.g., "1MB")')


class CleanupFilesParams(BaseModel):
    target: str = Field(..., description="Target directory or file to clean up")
    recursive: bool = Field(False, description="Process directories recursively")
    dry_run: bool = Field(True, description="Show what would be done without actually doing it")
    filters: CleanupFilters = Field(default_factory=CleanupFilters)


class ManageProcessesParams(BaseModel):
    action: Literal["list", "kill", "info"]
    pid: Optional[int] = Field(None, description="Process ID (for specific process operations)")
    name: Optional[str] = Field(None, description="Process name (for name-based operations)")
    signal: str = Field("TERM", description="Signal to send when killing process (TERM, KILL, etc.)")


class UpdateSystemParams(BaseModel):
    update_package_list: bool = Field(True, description="Update the package manager's package list")
    upgrade_packages: bool = Field(False, description="Upgrade installed packages to latest versions")
    security_only: bool = Field(False, description="Only install security updates (where supported)")
    dry_run: bool = Field(True, description="Show what would be updated without actually doing it")


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    params_model: Type[BaseModel]
    handler: Callable[[BaseModel], Dict[str, Any]]
    planner: Optional[Callable[[BaseModel], List[CommandDescriptor]]] = None

    def schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.params_model.model_json_schema(),
        }


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ToolRegistry:
    """
    Administrative tools. Every command a tool builds goes through the
    orchestrator; no tool talks to an executor directly.
    """

    def __init__(self, orchestrator: CommandOrchestrator, detector: Optional[SystemDetector] = None) -> None:
        self.orchestrator = orchestrator
        self.detector = detector or SystemDetector()
        self.dry_run_executor: CommandExecutor = DryRunExecutor()
        self._tools: Dict[str, Tool] = {}
        self._register_core_tools()

    # registry

    def register_tool(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get_tools(self) -> List[Tool]:
        return list(self._tools.values())

    def tool_defs(self) -> List[Dict[str, Any]]:
        return [tool.schema() for tool in self._tools.values()]

    def _get(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolError(f"Tool '{name}' not found")
        return tool

    def parse_params(self, name: str, params: Optional[Dict[str, Any]]) -> BaseModel:
        tool = self._get(name)
        try:
            return tool.params_model(**(params or {}))
        except ValidationError as ve:
            raise ToolError(str(ve)) from ve

    def plan(self, name: str, params: Optional[Dict[str, Any]] = None) -> List[CommandDescriptor]:
        """Commands a tool would run, without running them."""
        tool = self._get(name)
        if tool.planner is None:
            return []
        parsed = self.parse_params(name, params)
        try:
            return tool.planner(parsed)
        except ValueError as exc:
            raise ToolError(str(exc)) from exc

    def preview(self, name: str, params: Optional[Dict[str, Any]] = None) -> List[RiskVerdict]:
        return [classify(cmd) for cmd in self.plan(name, params)]

    def execute_tool(self, name: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        tool = self._get(name)
        parsed = self.parse_params(name, params)
        try:
            return tool.handler(parsed)
        except ValueError as exc:
            raise ToolError(f"Tool execution failed: {exc}") from exc

    # execution

    def _run(self, cmd: CommandDescriptor, dry_run: bool = False) -> OrchestrationResult:
        executor: Optional[CommandExecutor] = None
        if dry_run:
            executor = self.dry_run_executor
        elif dry_run_required(classify(cmd), self.orchestrator.config.high_risk_dry_run):
            logger.info("High-risk dry run enforced for %r", cmd.command_line)
            executor = self.dry_run_executor
        return self.orchestrator.run(cmd, executor)

    def _run_all(self, commands: List[CommandDescriptor], dry_run: bool = False) -> List[OrchestrationResult]:
        return [self._run(cmd, dry_run=dry_run) for cmd in commands]

    # planners

    def _plan_install(self, p: InstallPackageParams) -> List[CommandDescriptor]:
        pm = self.detector.get_system_info().package_manager
        return planner.plan_install(pm, p.packages, p.update_first)

    def _plan_remove(self, p: RemovePackageParams) -> List[CommandDescriptor]:
        pm = self.detector.get_system_info().package_manager
        return planner.plan_remove(pm, p.packages, p.purge)

    def _plan_execute(self, p: ExecuteCommandParams) -> List[CommandDescriptor]:
        return planner.plan_execute(p.command, p.args, p.working_dir, p.timeout)

    def _plan_service(self, p: ManageServiceParams) -> List[CommandDescriptor]:
        return planner.plan_service(self.detector.get_system_info().os, p.service, p.action)

    def _plan_cleanup(self, p: CleanupFilesParams) -> List[CommandDescriptor]:
        f = p.filters
        return planner.plan_cleanup(p.target, p.recursive, p.dry_run, f.extensions, f.age_in_days, f.size_limit)

    def _plan_processes(self, p: ManageProcessesParams) -> List[CommandDescriptor]:
        return planner.plan_processes(p.action, p.pid, p.name, p.signal)

    def _plan_update(self, p: UpdateSystemParams) -> List[CommandDescriptor]:
        pm = self.detector.get_system_info().package_manager
        return planner.plan_update(pm, p.update_package_list, p.upgrade_packages, p.security_only)

    # handlers

    def _install_packages(self, p: InstallPackageParams) -> Dict[str, Any]:
        results = self._run_all(self._plan_install(p))
        return {
            "success": all(r.succeeded for r in results),
            "results": [r.to_dict() for r in results],
            "packages": p.packages,
            "package_manager": self.detector.get_system_info().package_manager.name,
        }

    def _remove_packages(self, p: RemovePackageParams) -> Dict[str, Any]:
        results = self._run_all(self._plan_remove(p))
        return {
            "success": all(r.succeeded for r in results),
            "results": [r.to_dict() for r in results],
            "packages": p.packages,
            "package_manager": self.detector.get_system_info().package_manager.name,
        }

    def _system_info(self, p: SystemInfoParams) -> Dict[str, Any]:
        return {
            "system": self.detector.get_system_info().to_dict(),
            "resources": self.detector.get_system_resources(),
            "timestamp": _timestamp(),
        }

    def _execute_command(self, p: ExecuteCommandParams) -> Dict[str, Any]:
        result = self._run(self._plan_execute(p)[0])
        return {"success": result.succeeded, **result.to_dict()}

    def _manage_service(self, p: ManageServiceParams) -> Dict[str, Any]:
        result = self._run(self._plan_service(p)[0])
        return {
            "success": result.succeeded,
            "service": p.service,
            "action": p.action,
            "result": result.to_dict(),
            "timestamp": _timestamp(),
        }

    def _cleanup_files(self, p: CleanupFilesParams) -> Dict[str, Any]:
        result = self._run(self._plan_cleanup(p)[0])
        files = [line for line in result.outcome.stdout.splitlines() if line.strip()]
        verb = "Would clean up" if p.dry_run else "Cleaned up"
        return {
            "success": result.succeeded,
            "operation": "cleanup",
            "target": p.target,
            "recursive": p.recursive,
            "dry_run": p.dry_run,
            "files_processed": len(files),
            "files": files,
            "details": [f"{'DRY RUN: ' if p.dry_run else ''}{verb} {len(files)} file(s) in {p.target}"],
            "result": result.to_dict(),
            "timestamp": _timestamp(),
        }

    def _manage_processes(self, p: ManageProcessesParams) -> Dict[str, Any]:
        result = self._run(self._plan_processes(p)[0])
        payload: Dict[str, Any] = {
            "success": result.succeeded,
            "action": p.action,
            "pid": p.pid,
            "name": p.name,
            "signal": p.signal,
            "result": result.to_dict(),
            "timestamp": _timestamp(),
        }
        if p.action == "list" and p.name:
            lines = result.outcome.stdout.splitlines()
            payload["matches"] = [line for line in lines[1:] if p.name in line]
        return payload

    def _update_system(self, p: UpdateSystemParams) -> Dict[str, Any]:
        commands = self._plan_update(p)
        results = self._run_all(commands, dry_run=p.dry_run)
        pm = self.detector.get_system_info().package_manager
        payload: Dict[str, Any] = {
            "success": all(r.succeeded for r in results),
            "update_package_list": p.update_package_list,
            "upgrade_packages": p.upgrade_packages,
            "security_only": p.security_only,
            "dry_run": p.dry_run,
            "commands": [c.command_line for c in commands],
            "results": [r.to_dict() for r in results],
            "package_manager": pm.name,
            "timestamp": _timestamp(),
        }
        if p.security_only and p.upgrade_packages and pm.name == "apt" and not p.dry_run and results:
            # apt has no security-only upgrade; report what the simulation flags
            payload["security_updates"] = [
                line for line in results[-1].outcome.stdout.splitlines() if "security" in line.lower()
            ]
        return payload

    def _register_core_tools(self) -> None:
        self.register_tool(Tool(
            "install_package",
            "Install system packages using the appropriate package manager",
            InstallPackageParams, self._install_packages, self._plan_install,
        ))
        self.register_tool(Tool(
            "remove_package",
            "Remove system packages using the appropriate package manager",
            RemovePackageParams, self._remove_packages, self._plan_remove,
        ))
        self.register_tool(Tool(
            "system_info",
            "Get comprehensive system information",
            SystemInfoParams, self._system_info,
        ))
        self.register_tool(Tool(
            "execute_command",
            "Execute a system command with safety validation",
            ExecuteCommandParams, self._execute_command, self._plan_execute,
        ))
        self.register_tool(Tool(
            "manage_service",
            "Manage system services (start, stop, restart, status, enable, disable)",
            ManageServiceParams, self._manage_service, self._plan_service,
        ))
        self.register_tool(Tool(
            "cleanup_files",
            "Clean up files and directories with safety validation",
            CleanupFilesParams, self._cleanup_files, self._plan_cleanup,
        ))
        self.register_tool(Tool(
            "manage_processes",
            "List, monitor, or manage system processes",
            ManageProcessesParams, self._manage_processes, self._plan_processes,
        ))
        self.register_tool(Tool(
            "update_system",
            "Update package lists and upgrade system packages",
            UpdateSystemParams, self._update_system, self._plan_update,
        ))
