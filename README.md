# gwq

A library of helpers for queueing coding-agent tasks against Git worktrees
and for keeping records of the runs. All state lives in plain JSON files, so
a queue or a log directory can be inspected and repaired by hand.

## Installation

Install the package with any Python installer. It needs Python 3.10 or later.
Its only runtime dependency is PyYAML. The `test` extra adds pytest. Some
functions call the `git` executable, so it must be on `PATH`.

## Modules

- **`gwq.task`**: the full `Task` record and its smaller `SimplifiedTask`
  form, along with `Status`, `DependencyPolicy`, `TaskConfig` and
  `TaskResult`.
  - `Task.to_dict` and `Task.from_dict` give the JSON form. Durations in it
    are nanosecond integers.
  - `new_simplified_task` creates a pending task stamped with the current
    time.
  - `SimplifiedTask.to_legacy_task` expands a task. It sets the agent type
    to `claude`, the dependency policy to `wait` and `skip_permissions` to
    true. For a completed task that has a result, it sets `completed_at`.
  - `from_legacy_task` reduces a task again. It recomputes the result's
    duration from `started_at` and `completed_at`.
  - `SimplifiedTask.display_name` returns the name. When the name is empty
    it returns the prompt, cut to 50 characters.
- **`gwq.storage`**: `Storage(queue_dir)` keeps one `task-<id>.json` file per
  task. It provides these methods:
  - `save_task`, `load_task`, `delete_task` and `list_tasks`. `list_tasks`
    skips unreadable files.
  - `update_task_status`, which sets `started_at` or `completed_at` the first
    time a task starts or finishes.
  - `update_task_result` and `update_task_session_id`.
  - `find_task_by_session_id`, `get_tasks_by_status` and
    `get_pending_tasks`. The last returns tasks that are pending or waiting.
  - `cleanup(older_than)`, which removes finished tasks completed before
    that age and returns how many it removed.

  Failures raise `StorageError`. A missing task raises `TaskNotFoundError`.
- **`gwq.task_manager`**: `TaskManager(storage, config)`.
  - `create_task` checks a `CreateTaskRequest`: the name and worktree must be
    set and the priority must lie between 1 and 100. It then checks that the
    request's repository, or the working directory, is inside a Git work tree,
    and stores the new task under a random short ID.
  - `create_tasks_from_file` reads a version `1.0` YAML task file.
  - `find_task_by_pattern` tries an exact ID first. Failing that, it looks
    for a single task whose ID or worktree contains the pattern, or whose
    name contains it without regard to case.
  - `filter_tasks_by_status` and `filter_tasks_by_priority` narrow a list of
    tasks.

  Errors raise `TaskManagerError`. When a batch stops part way, its `created`
  attribute lists the tasks already stored.
- **`gwq.repository`**:
  - `git_toplevel(path)` asks `git` for the top of a work tree.
  - `RepositoryService(base_dir)` provides `find_repo_root`,
    `resolve_repository`, `current_branch`, `validate_repository` and
    `validate_branch`. `find_repo_root` walks up to a `.git` entry.
    `resolve_repository` also accepts names relative to `base_dir`, which
    defaults to `$HOME/worktrees`.

  Errors raise `RepositoryError`.
- **`gwq.log_manager`**: `UnifiedLogManager(config_dir)` keeps execution
  metadata in `<config_dir>/logs/metadata/YYYYMMDD-HHMMSS-<id>.json`.
  Records are `UnifiedExecution` objects. A record may carry a
  `TaskExecutionInfo`.
  - `start_logging`, `save_execution` and `load_execution`.
    `load_execution` raises `ExecutionNotFoundError` when no file exists.
  - `list_executions(*filters)` returns the records that pass every filter,
    newest first.
  - `log_file` gives the dated log file location.
  - `cleanup_old_logs(older_than)` removes the logs and metadata of
    executions that are not running and started before that age. It prints
    and returns how many log files it removed.
- **`gwq.log_filters`**: `filter_by_status`, `filter_by_date` (`YYYY-MM-DD`;
  an invalid date filters nothing), `filter_by_content` (prompt and tags,
  ignoring case), `truncate` and `format_metadata_only`.
  `parse_duration` accepts Go-style durations such as `90m` or `1h30m`, plus
  day counts such as `30d`.
- **`gwq.session`**:
  - `escape_for_shell` escapes text so it can stand inside double quotes.
  - `build_task_command` builds the `claude ... -p "<prompt>"` command line.
    It pipes the command through `tee` into a timestamped log file when the
    log directory can be created.
  - `write_session_metadata` writes the metadata file for a newly started
    session and returns its path.
- **`gwq.finder_format`**: text for picking items from a list.
  - `format_task_line` and `format_task_preview` describe a task.
  - `format_execution_line` and `format_execution_preview` describe an
    execution.
  - The helpers are `status_icon`, `format_relative_time` and
    `extract_branch_from_path`.
- **`gwq.exec_command`**:
  - `parse_exec_args` parses `[pattern] [-g|--global] [-s|--stay] --
    command [args...]` into `ExecArgs`. It raises `ExecArgsError` on bad
    input and `HelpRequested` for `-h`/`--help`.
  - `execute_in_worktree` runs a command in a directory.
  - `parse_config_value` turns `true`, `false` and leading integers into
    Python values.

## Usage

### Queueing tasks

```python
from gwq.storage import Storage
from gwq.task import Status, new_simplified_task

storage = Storage("/tmp/gwq-queue")
task = new_simplified_task("a1b2c3", "Add tests", "feature/tests",
                           "Write unit tests for the parser", 75)
storage.save_task(task.to_legacy_task())
storage.update_task_status("a1b2c3", Status.RUNNING)

for stored in storage.get_tasks_by_status(Status.RUNNING):
    print(stored.id, stored.name, stored.started_at)
```

### Creating tasks from a YAML file

```yaml
version: "1.0"
repository: "."
tasks:
  - id: "auth"
    name: "Add authentication"
    worktree: "feature/auth"
    priority: 80
    prompt: "Implement login and logout endpoints"
  - id: "docs"
    name: "Document the API"
    worktree: "feature/docs"
    depends_on: ["auth"]
    prompt: "Write reference docs for the new endpoints"
```

```python
from gwq.task_manager import TaskManager

manager = TaskManager(storage, config=None)
created = manager.create_tasks_from_file("tasks.yaml")
```

The repository named in the file, or the working directory when none is
named, must be inside a Git work tree. A task with no priority gets 50. Any
version other than `1.0` is rejected.

### Browsing execution logs

```python
from gwq.log_filters import filter_by_content, parse_duration
from gwq.log_manager import UnifiedLogManager

logs = UnifiedLogManager("/home/me/.config/gwq/claude")
for execution in filter_by_content(logs.list_executions(), "parser"):
    print(execution.execution_id, execution.status.value)
logs.cleanup_old_logs(parse_duration("30d"))
```

### Running a command inside a worktree

```python
from gwq.exec_command import execute_in_worktree, parse_exec_args

parsed = parse_exec_args(["feature", "--", "make", "test"])
execute_in_worktree("/home/me/worktrees/feature", parsed.command_args, parsed.stay)
```

A command that exits non-zero raises `subprocess.CalledProcessError`. With
`stay` set, `$SHELL` is started in the directory afterwards; when `$SHELL` is
unset, `/bin/sh` is used.

## What the package does not do

- It installs no `gwq` command. Everything is used from Python.
- It does not create, list or remove Git worktrees, and it does not map a
  pattern to a worktree path. `execute_in_worktree` needs the path given to
  it.
- It starts no terminal sessions. `gwq.session` only builds the command line
  and writes the metadata file.
- It has no interactive picker. `gwq.finder_format` only produces the text
  a picker would show.
- It reads and writes no configuration file. `parse_config_value` only types
  a value. The `config` passed to `TaskManager` is kept but not consulted.
- It does not run queued tasks.