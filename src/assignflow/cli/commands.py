# src/assignflow/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass

from ..core.errors import EngineError
from ..core.state import AppState
from ..tasks import milestone_api, task_api
from ..tasks.guard import permitted_actions
from ..tasks.task_models import Task, User
from ..tasks.validation import require_task_id


logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Who is typing at the console. Passed explicitly into every engine call."""

    actor: User | None = None


CommandHandler = Callable[[AppState, Session, list[str]], str]


class NeedsLogin(Exception):
    pass


class UsageError(Exception):
    pass


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /create, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        session: Session,
        line: str,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, session, args)
        except NeedsLogin:
            return "Log in first: /login <user_id>"
        except UsageError as e:
            return f"Usage: {e}"
        except EngineError as e:
            logger.debug("Command /%s refused: %s", name, e)
            return f"{e.kind}: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _actor(session: Session) -> User:
    if session.actor is None:
        raise NeedsLogin()
    return session.actor


def _need(args: list[str], n: int, usage: str) -> None:
    if len(args) < n:
        raise UsageError(usage)


def _fmt_task(task: Task) -> str:
    lines = [
        f"#{task.id} [{task.status.value}] {task.title}",
        f"  {task.description}",
        f"  from={task.assigner} to={task.receiver} deadline={task.deadline.isoformat()}",
    ]
    if task.remark:
        lines.append(f"  remark: {task.remark}")
    if task.completed_at:
        lines.append(f"  completed at {task.completed_at.isoformat()}")
    return "\n".join(lines)


# ---- users / session ----


def cmd_help(state: AppState, session: Session, args: list[str]) -> str:
    return registry.build_help()


def cmd_adduser(state: AppState, session: Session, args: list[str]) -> str:
    """/adduser <name> <email> <role> [user_id]"""
    _need(args, 3, "/adduser <name> <email> <role> [user_id]")
    add_user = getattr(state.users, "add_user", None)
    if add_user is None:
        return "This user directory is read-only."
    user = add_user(name=args[0], email=args[1], role=args[2], user_id=args[3] if len(args) > 3 else None)
    return f"User added: {user.id} ({user.name}, {user.role})"


def cmd_users(state: AppState, session: Session, args: list[str]) -> str:
    list_users = getattr(state.users, "list_users", None)
    users = list_users() if list_users else []
    if not users:
        return "No users. Add one with /adduser."
    return "\n".join(f"{u.id}  {u.name} <{u.email}> [{u.role}]" for u in users)


def cmd_login(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 1, "/login <user_id>")
    user = state.users.resolve_user(args[0])
    if user is None:
        return f"not_found: no user with id {args[0]}"
    session.actor = user
    logger.debug("Console session actor=%s", user.id)
    return f"Logged in as {user.name} ({user.role})."


def cmd_whoami(state: AppState, session: Session, args: list[str]) -> str:
    actor = _actor(session)
    return f"{actor.id} {actor.name} <{actor.email}> [{actor.role}]"


# ---- lifecycle ----


def cmd_create(state: AppState, session: Session, args: list[str]) -> str:
    usage = '/create "<title>" "<description>" <receiver_id> <deadline YYYY-MM-DD> ["remark"]'
    _need(args, 4, usage)
    task = state.lifecycle.create(
        _actor(session),
        title=args[0],
        description=args[1],
        receiver_id=args[2],
        deadline=args[3],
        remark=args[4] if len(args) > 4 else None,
    )
    return f"Task assigned.\n{_fmt_task(task)}"


def cmd_accept(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 1, "/accept <task_id>")
    task = state.lifecycle.accept(_actor(session), require_task_id(args[0]))
    return f"Task accepted.\n{_fmt_task(task)}"


def cmd_complete(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 1, "/complete <task_id>")
    task = state.lifecycle.mark_complete(_actor(session), require_task_id(args[0]))
    return f"Task marked as complete.\n{_fmt_task(task)}"


def _verdict(state: AppState, session: Session, args: list[str], approved: bool) -> str:
    _need(args, 1, f"/{'approve' if approved else 'reject'} <task_id> [\"remark\"]")
    task = state.lifecycle.approve_completion(
        _actor(session),
        require_task_id(args[0]),
        approved=approved,
        remark=" ".join(args[1:]) or None,
    )
    head = "Task approved." if approved else "Task marked as incomplete."
    return f"{head}\n{_fmt_task(task)}"


def cmd_approve(state: AppState, session: Session, args: list[str]) -> str:
    return _verdict(state, session, args, True)


def cmd_reject(state: AppState, session: Session, args: list[str]) -> str:
    return _verdict(state, session, args, False)


def cmd_reassign(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 2, "/reassign <task_id> <new_receiver_id>")
    task = state.lifecycle.reassign(_actor(session), require_task_id(args[0]), args[1])
    return f"Task reassigned.\n{_fmt_task(task)}"


def cmd_edit(state: AppState, session: Session, args: list[str]) -> str:
    """/edit <task_id> title="..." deadline=2030-01-01 ..."""
    usage = '/edit <task_id> field=value ... (fields: title, description, remark, deadline)'
    _need(args, 2, usage)
    changes: dict[str, str] = {}
    for pair in args[1:]:
        key, sep, value = pair.partition("=")
        if not sep:
            raise UsageError(usage)
        changes[key.strip().lower()] = value
    task = state.lifecycle.edit(_actor(session), require_task_id(args[0]), changes)
    return f"Task updated.\n{_fmt_task(task)}"


def cmd_delete(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 1, "/delete <task_id>")
    task_id = require_task_id(args[0])
    state.lifecycle.delete(_actor(session), task_id)
    return f"Task #{task_id} deleted."


# ---- comments ----


def cmd_comment(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 2, '/comment <task_id> "<text>"')
    c = task_api.add_comment(state, _actor(session), require_task_id(args[0]), " ".join(args[1:]))
    return f"Comment added by {c.commenter_name or c.commented_by}."


def cmd_comments(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 1, "/comments <task_id>")
    comments = task_api.get_comments(state, _actor(session), require_task_id(args[0]))
    if not comments:
        return "No comments yet."
    return "\n".join(
        f"{i}. [{c.timestamp.isoformat()}] {c.commenter_name or c.commented_by}: {c.content}"
        for i, c in enumerate(comments, start=1)
    )


# ---- listings ----


def cmd_tasks(state: AppState, session: Session, args: list[str]) -> str:
    """
    /tasks            -> everything I assigned or received
    /tasks accepted   -> tasks I am working on
    /tasks completed  -> tasks I completed
    /tasks assigned   -> tasks I handed out
    /tasks done       -> every completed task
    """
    sub = args[0].lower() if args else "all"
    if sub == "done":
        tasks = task_api.all_completed_tasks(state)
    else:
        actor = _actor(session)
        if sub == "all":
            tasks = task_api.tasks_for_user(state, actor)
        elif sub == "accepted":
            tasks = task_api.accepted_tasks(state, actor)
        elif sub == "completed":
            tasks = task_api.my_completed_tasks(state, actor)
        elif sub == "assigned":
            tasks = task_api.assigned_tasks(state, actor)
        else:
            raise UsageError("/tasks [all|accepted|completed|assigned|done]")

    if not tasks:
        return "No tasks found."

    limit = int(getattr(state.settings, "list_limit", 50))
    rows = [task_api.to_summary(state, t) for t in tasks[:limit]]
    lines = [f"{'ID':>4}  {'STATUS':<10} {'DEADLINE':<10}  FROM -> TO  TITLE", "-" * 60]
    for r in rows:
        lines.append(
            f"{r['task_id']:>4}  {r['status']:<10} {r['deadline']:<10}  {r['from']} -> {r['to']}  {r['title']}"
        )
    return "\n".join(lines)


def cmd_show(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 1, "/show <task_id>")
    actor = _actor(session)
    task = task_api.get_task(state, actor, require_task_id(args[0]))
    allowed = sorted(a.value for a in permitted_actions(actor, task, staff_role=state.staff_role))
    return f"{_fmt_task(task)}\n  you may: {', '.join(allowed)}"


# ---- milestones ----


def cmd_milestone(state: AppState, session: Session, args: list[str]) -> str:
    _need(args, 1, '/milestone "<text>"')
    m = milestone_api.create_milestone(state, _actor(session), " ".join(args))
    return f"Milestone #{m.id} created."


def cmd_milestones(state: AppState, session: Session, args: list[str]) -> str:
    items = milestone_api.list_milestones(state)
    if not items:
        return "No milestones."
    return "\n".join(
        f"#{m.id} [{m.created_at.date().isoformat()}] {m.milestone} ({m.staff_name or m.created_by})"
        for m in items
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("adduser", cmd_adduser, help_text="Add a user: /adduser <name> <email> <role> [id].")
registry.register("users", cmd_users, help_text="List known users.")
registry.register("login", cmd_login, help_text="Act as a user: /login <user_id>.")
registry.register("whoami", cmd_whoami, help_text="Show the current user.")
registry.register("create", cmd_create, help_text="Assign a task to someone.", aliases=["assign"])
registry.register("accept", cmd_accept, help_text="Accept a task assigned to you.")
registry.register("complete", cmd_complete, help_text="Mark a task you received as complete.")
registry.register("approve", cmd_approve, help_text="Approve completion of a task you assigned.")
registry.register("reject", cmd_reject, help_text="Send a task you assigned back to pending.")
registry.register("reassign", cmd_reassign, help_text="Give a task you assigned to someone else.")
registry.register("edit", cmd_edit, help_text="Edit title/description/remark/deadline of your task.")
registry.register("delete", cmd_delete, help_text="Delete a task you assigned.")
registry.register("comment", cmd_comment, help_text="Comment on a task you take part in.")
registry.register("comments", cmd_comments, help_text="Show comments of a task.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [all|accepted|completed|assigned|done].")
registry.register("show", cmd_show, help_text="Show one task and what you may do with it.")
registry.register("milestone", cmd_milestone, help_text="Staff only: record a milestone.")
registry.register("milestones", cmd_milestones, help_text="List milestones, newest first.")
