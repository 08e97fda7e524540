# ariadne

Storage and tool building blocks for LLM agents. The package uses only the
standard library.

## Storage

`ariadne.storage.models` holds the shared data types:

- `ChatMessage` is one message of a conversation.
- `MemoryEntry` and `MemoryType` describe memories. A memory type is `EPISODIC`, `ORCHESTRATION` or `CONVERSATION`.
  - `new_memory_entry` creates an entry with a random id.
  - `parse_memory_type` turns a name into a `MemoryType`, ignoring case.
- `ResultKey`, `ResultMetadata`, `Result`, `SearchMatch`, `StoreOptions`, `QueryOptions` and `LineRange` describe stored results.
- `ConversationStorage`, `MemoryStorage` and `ContentStorage` are protocols that the backends satisfy.

The backends:

- `ariadne.storage.memory.InMemoryStorage` keeps conversation history in a dict.
  - It stores a copy of each saved history, so changing the caller's list later has no effect on it.
  - It hands back a copy on each load.
- `ariadne.storage.sqlite.SqliteStorage` keeps several kinds of data in one SQLite database:
  - conversation histories;
  - memories;
  - content results.

  It is opened in one of these ways:
  - `open_sqlite(path)` creates missing parent directories;
  - `SqliteStorage.in_memory()` gives a private in-memory database.

  It is also a context manager, and database failures raise `StorageError`.
- `ariadne.storage.resultstore.ResultStore` holds large tool outputs in memory:
  - it keeps a sorted key index for prefix lookups (`get_by_prefix`);
  - it deduplicates content by an xxHash64 content hash;
  - `search` does a substring search across a session's content and reports the key, line number and matching line of each hit;
  - `get_lines` fetches an inclusive, 1-indexed range of lines.

  A `ContentStorage` backend such as `SqliteStorage` can be passed in to make results persist across runs. The store then owns it, and `close()` closes it.

```python
from ariadne.storage.models import ResultKey, StoreOptions, LineRange
from ariadne.storage.resultstore import ResultStore
from ariadne.storage.sqlite import open_sqlite

store = ResultStore(open_sqlite(".ariadne/results.db"))
key = ResultKey("session-1", "notes.txt")
meta = store.store(key, "first line\nsecond line\nthird line", StoreOptions())
print(meta.line_count)                             # 3
print(store.get_lines(key, LineRange(2, 3)))       # second line\nthird line
print(store.search("session-1", "second", 10))
store.close()
```

`get` and `get_metadata` return `None` for a key that is not stored.

## Tools

Every tool subclasses `ariadne.tools.tool.Tool`. Its arguments are JSON text, and it has three methods:

- `metadata()` returns a `ToolMetadata`.
- `validate(args)` raises `ValueError` when the arguments are invalid.
- `execute(args)` returns a `ToolResult`.

A failed run comes back as a `ToolResult` whose `error` is set; `success()` tells the two apart, and `to_json()` serialises the result.

The tools:

| Tool | Module | Name | What it does |
| --- | --- | --- | --- |
| `ShellTool` | `ariadne.tools.shell` | `execute_shell` | Runs `sh -c`. Can be given an allowlist of base commands. |
| `BashTool` | `ariadne.tools.bash` | `execute_bash` | Runs a command with structured `argv`, `env` and `cwd`, checked against a `BashPolicy`. |
| `ReadFileTool` | `ariadne.tools.filesystem` | `read_file` | Reads a file. |
| `WriteFileTool` | `ariadne.tools.filesystem` | `write_file` | Writes a file. |
| `AppendFileTool` | `ariadne.tools.filesystem` | `append_file` | Appends to a file. |
| `EditFileTool` | `ariadne.tools.filesystem` | `edit_file` | Replaces a search string in a file. |
| `HttpTool` | `ariadne.tools.http` | `http_request` | Sends a GET or POST request. Can be limited to allowed domains. |
| `GlobTool` | `ariadne.tools.globtool` | `glob` | Finds files, with `**` support. Hidden directories are skipped. |
| `RipgrepTool` | `ariadne.tools.ripgrep` | `ripgrep` | Runs the `rg` program, which must be installed. |
| `SearchStoredTool` | `ariadne.tools.resultstore_tools` | `search_stored` | Searches the content of a `ResultStore`. |
| `GetLinesTool` | `ariadne.tools.resultstore_tools` | `get_lines` | Fetches lines from a `ResultStore`. |
| `ListStoredTool` | `ariadne.tools.resultstore_tools` | `list_stored` | Lists the content of a `ResultStore`. |

Details:

- All four file tools accept allowed path prefixes and a size limit.
- When `ReadFileTool` is given a content store (for example a `ResultStore`), it stores the file there and returns only a size and line count. Given a `StoredFileContext` as well, it records the path, and `GetLinesTool` then uses the last stored file when no key is passed.

`ariadne.tools.registry.with_defaults()` returns a `Registry` holding these tools: the shell, bash, four file, HTTP and ripgrep tools. `GlobTool` and the result-store tools are registered by hand.

```python
from ariadne.tools.registry import with_defaults
from ariadne.tools.executor import Executor

registry = with_defaults()
print(registry.names())
tool = registry.get("read_file")
result = Executor().execute(tool, '{"path": "README.md"}')
print(result.success(), result.output[:80])
```

`Executor` retries failed runs up to `ToolConfig.retries()` attempts (3 by default), with exponential backoff:

- The backoff starts at 0.1 s, doubles each attempt and is capped at 5 s.
- Errors mentioning validation, permission, "not allowed" or "empty" are returned at once, without a retry.
- `execute_with_timeout` raises `TimeoutError` if its deadline passes while it waits to retry.

`execute_once` validates the arguments and then runs the tool a single time.

## What it does not do

There is no command-line program. The package does not talk to any language-model service and has no agent loop. It supplies the storage and the tools that such a loop would use.

## Tests

```
pip install -e .[test]
pytest
```