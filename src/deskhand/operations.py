"""Built-in command verbs."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from datetime import date as dt_date
from pathlib import Path
from typing import Any

from apscheduler.triggers.date import DateTrigger
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from deskhand.context import AgentContext
from deskhand.launcher import search_url
from deskhand.notify import APP_TITLE
from deskhand.router import CommandRouter, OperationRegistry
from deskhand.utils import local_timestamp, millis, slugify

PLAN_PERIODS = ("morning", "afternoon", "evening")


class CommandInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class CreateFileInput(CommandInput):
    filename: str = Field(..., min_length=1, description="File name relative to the workspace")
    content: str = Field(..., description="File contents")
    type: str = Field(default="text", description="File type tag")


class OpenApplicationInput(CommandInput):
    app_name: str = Field(..., min_length=1, alias="appName", description="Application, file or URL to open")


class SearchWebInput(CommandInput):
    query: str = Field(..., min_length=1, description="Search query")
    save_results: bool = Field(default=True, alias="saveResults", description="Write a placeholder record")


class SetReminderInput(CommandInput):
    title: str = Field(..., min_length=1, description="Reminder title")
    message: str | None = Field(default=None, description="Reminder body, defaults to the title")
    time: datetime | None = Field(default=None, description="When to fire; naive values are local time")
    after_seconds: int | None = Field(default=None, ge=0, alias="afterSeconds", description="Fire after a delay")


class WorkspaceFile(CommandInput):
    name: str = Field(..., min_length=1)
    content: str = ""


class PrepareWorkspaceInput(CommandInput):
    name: str = Field(..., min_length=1, description="Workspace directory name")
    files: list[WorkspaceFile] = Field(default_factory=list)
    applications: list[str] = Field(default_factory=list)


class ArticleOutlineInput(CommandInput):
    topic: str = Field(..., min_length=1)
    sections: int = Field(default=5, ge=1, le=50)


class PlanTask(CommandInput):
    time: str = Field(..., description="morning, afternoon or evening")
    description: str


class DailyPlanInput(CommandInput):
    tasks: list[PlanTask] = Field(default_factory=list)
    date: dt_date = Field(default_factory=dt_date.today)


class ResearchTopicInput(CommandInput):
    topic: str = Field(..., min_length=1)
    save_results: bool = Field(default=True, alias="saveResults")


class GenerateFileInput(CommandInput):
    request: str = Field(..., min_length=1, description="What the file should contain")
    provider: str | None = Field(default=None, description="Backend name, defaults to the configured provider")


def render_outline(topic: str, sections: int) -> str:
    lines = [f"# Article Outline: {topic}", "", f"Created: {local_timestamp()}", ""]
    lines += ["## Introduction", f"- Overview of {topic}", f"- Importance of {topic}", "- Thesis statement", ""]
    for idx in range(1, sections + 1):
        lines += [f"## Section {idx}", "- Key point 1", "- Key point 2", "- Key point 3", ""]
    lines += ["## Conclusion", "- Summary of key points", "- Final thoughts", "- Call to action", ""]
    return "\n".join(lines) + "\n"


def render_daily_plan(day: dt_date, tasks: list[PlanTask]) -> str:
    lines = [f"# Daily Plan for {day.isoformat()}", "", f"Created: {local_timestamp()}", ""]
    for period in PLAN_PERIODS:
        lines.append(f"## {period.capitalize()}")
        entries = [task.description for task in tasks if task.time.strip().lower() == period]
        lines += [f"- {entry}" for entry in entries] or ["- No tasks scheduled"]
        lines.append("")
    return "\n".join(lines)


def reminder_time(params: SetReminderInput) -> datetime | None:
    if params.time is not None:
        return params.time.astimezone()
    if params.after_seconds:
        return datetime.now(UTC) + timedelta(seconds=params.after_seconds)
    return None


def register_operations(registry: OperationRegistry, context: AgentContext) -> None:
    """Register the built-in verbs against one agent context."""

    register = registry.register
    store = context.store
    notifier = context.notifier
    launcher = context.launcher

    @register(name="create_file", short_description="Create a file from literal content", model=CreateFileInput)
    async def create_file(params: CreateFileInput) -> dict[str, Any]:
        path = await store.write(params.filename, params.content)
        notifier.notify(APP_TITLE, f"Created file: {params.filename}\nLocation: {path}")
        return {"success": True, "filePath": str(path), "message": f"File created at {path}"}

    @register(name="open_application", short_description="Open an application or URI", model=OpenApplicationInput)
    async def open_application(params: OpenApplicationInput) -> dict[str, Any]:
        await launcher.open(params.app_name)
        notifier.notify(APP_TITLE, f"Opened application: {params.app_name}")
        return {"success": True, "message": f"Opened application: {params.app_name}"}

    @register(name="search_web", short_description="Open a web search and record it", model=SearchWebInput)
    async def search_web(params: SearchWebInput) -> dict[str, Any]:
        await launcher.open(search_url(params.query))

        file_path: Path | None = None
        if params.save_results:
            file_path = await store.write(
                f"search_results_{millis()}.txt",
                f"Search results for: {params.query}\n\nPlaceholder for actual search results.",
            )

        saved = f". Results saved to {file_path}" if file_path is not None else ""
        notifier.notify(APP_TITLE, f"Performed search for: {params.query}{saved}")
        return {
            "success": True,
            "filePath": str(file_path) if file_path is not None else None,
            "message": f'Search performed for "{params.query}"{saved}',
        }

    @register(name="set_reminder", short_description="Fire or schedule a reminder notification", model=SetReminderInput)
    async def set_reminder(params: SetReminderInput) -> dict[str, Any]:
        title = f"Reminder: {params.title}"
        body = params.message or params.title
        run_at = reminder_time(params)
        if run_at is None or run_at <= datetime.now(UTC):
            notifier.notify(title, body)
            return {"success": True, "message": f"Reminder set: {params.title}"}
        if not context.scheduler.running:
            return {
                "success": False,
                "error": "Reminder scheduler is not running; future reminders need `deskhand serve`",
            }

        job = context.scheduler.add_job(
            notifier.notify,
            trigger=DateTrigger(run_date=run_at),
            id=str(uuid.uuid4())[:8],
            kwargs={"title": title, "message": body},
            misfire_grace_time=None,
        )
        logger.info("reminder.scheduled job={} run_at={}", job.id, run_at.isoformat())
        return {
            "success": True,
            "jobId": job.id,
            "runAt": run_at.isoformat(),
            "message": f"Reminder set: {params.title} at {run_at.isoformat()}",
        }

    @register(
        name="prepare_workspace",
        short_description="Create a directory with files and launch applications",
        model=PrepareWorkspaceInput,
    )
    async def prepare_workspace(params: PrepareWorkspaceInput) -> dict[str, Any]:
        directory = await store.ensure_dir(params.name)
        created: list[str] = []
        for item in params.files:
            path = await store.write(Path(params.name) / item.name, item.content)
            created.append(str(path))
        for application in params.applications:
            await launcher.open(application)

        notifier.notify(
            APP_TITLE,
            f"Prepared workspace: {params.name}\nLocation: {directory}\nFiles: {len(created)}",
        )
        return {
            "success": True,
            "workspaceDir": str(directory),
            "files": created,
            "message": f"Workspace created at {directory} with {len(created)} files",
        }

    @register(name="create_article_outline", short_description="Write an article outline", model=ArticleOutlineInput)
    async def create_article_outline(params: ArticleOutlineInput) -> dict[str, Any]:
        path = await store.write(f"{slugify(params.topic)}_outline.md", render_outline(params.topic, params.sections))
        notifier.notify(APP_TITLE, f"Created article outline for: {params.topic}\nLocation: {path}")
        return {"success": True, "filePath": str(path), "message": f"Article outline created at {path}"}

    @register(
        name="create_daily_plan",
        short_description="Write a morning/afternoon/evening plan",
        model=DailyPlanInput,
    )
    async def create_daily_plan(params: DailyPlanInput) -> dict[str, Any]:
        path = await store.write(
            f"daily_plan_{params.date.isoformat()}.md",
            render_daily_plan(params.date, params.tasks),
        )
        notifier.notify(APP_TITLE, f"Created daily plan for: {params.date.isoformat()}\nLocation: {path}")
        return {"success": True, "filePath": str(path), "message": f"Daily plan created at {path}"}

    @register(name="research_topic", short_description="Research a topic and save the answer", model=ResearchTopicInput)
    async def research_topic(params: ResearchTopicInput) -> dict[str, Any]:
        record = await context.pipeline.research(params.topic, context.research_backend(), save=params.save_results)
        saved = f". Results saved to {record.path}" if record.path is not None else ""
        return {
            "success": True,
            "filePath": str(record.path) if record.path is not None else None,
            "message": f'Research completed on "{params.topic}"{saved}',
            "researchContent": record.content,
        }

    @register(name="generate_file", short_description="Ask a backend for a file and save it", model=GenerateFileInput)
    async def generate_file(params: GenerateFileInput) -> dict[str, Any]:
        record = await context.pipeline.create_from_request(params.request, context.backend(params.provider))
        return {
            "success": True,
            "filePath": str(record.path),
            "fileDetails": record.file_details(),
            "message": f'Created {record.descriptor.file_type} file "{record.descriptor.filename}"',
        }


def build_router(context: AgentContext) -> CommandRouter:
    registry = OperationRegistry()
    register_operations(registry, context)
    return CommandRouter(registry)
