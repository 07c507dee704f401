# taskval

`taskval` checks task definitions written against the Structured Task Template
Spec. It validates either a single task node or a whole task graph in two
stages:

1. **Structure** – required fields, field types, the kebab-case `task_id`
   pattern, allowed `priority` and `estimate` values, unknown fields, and the
   "list or `{"status": "N/A", "reason": "..."}`" forms of contextual fields.
   Findings carry the rule `SCHEMA`.
2. **Semantics** – run only when the structure is sound:
   - `V2` duplicate `task_id`s
   - `V4` `depends_on` entries that name no task in the graph
   - `V5` self-dependencies and dependency cycles
   - `V6` goals using "try", "explore", "investigate" or "look into"
     (error), or starting with "To " (warning)
   - `V7` vague acceptance criteria such as "works correctly" or
     "as expected" (warning)
   - `V9` missing `depends_on`, `constraints` or `files_scope` (warning)
   - `V10` implementation tasks (name starting with implement, add, fix,
     create, build or write) without a `files_scope` (warning)
   - `MILESTONE` duplicate milestone names and references to unknown tasks
     or milestones

A graph that passes can be turned into issues in the Beads (`bd`) issue
tracker: one epic for the graph, one issue per task in dependency order,
dependency links between them, and the template metadata stored in each
issue's design field.

## Installation

```
pip install .
```

## Usage

Validate a task graph (the default mode):

```
taskval plan.json
```

Validate a single task node:

```
taskval --mode=task task.json
```

Read from standard input:

```
cat task.json | taskval --mode=task -
```

Get machine-readable output (`valid`, `errors`, `stats`, and `beads` when
issues were created):

```
taskval --output=json plan.json
```

### Creating Beads issues

When validation passes, `--create-beads` creates the issues by running the
`bd` program, which must be on `PATH` in an initialised Beads project:

```
taskval --create-beads plan.json
```

Show the `bd` commands that would run, without running them (metadata
updates are left out of the listing):

```
taskval --create-beads --dry-run plan.json
```

The epic title is taken from `--epic-title` if given, else from the first
milestone name, else from the file name, else `Task Graph: (stdin)`:

```
taskval --create-beads --epic-title "Release 2" plan.json
```

### Exit codes

| Code | Meaning                                      |
|------|----------------------------------------------|
| 0    | Validation passed (warnings may be present)  |
| 1    | Validation failed                            |
| 2    | Usage error, internal error or `bd` failure  |

## Library use

```python
from taskval.validate import Mode, validate

with open("plan.json", "rb") as fh:
    result = validate(fh.read(), Mode.TASK_GRAPH)

print(result.valid, result.stats.error_count)
for finding in result.errors:
    print(finding.severity.value, finding.rule, finding.path, finding.message)
```

`result.graph` holds the parsed `TaskGraph` only when validation passed.
Beads commands can then be built without running them:

```python
from taskval.commands import Creator, format_dry_run_output

if result.graph is not None:
    commands = Creator(filename="plan.json").build_graph_commands(result.graph)
    print(format_dry_run_output(commands))
```

`taskval.executor.execute_commands` runs such commands through `bd`,
substituting the created ids for placeholders; on failure it raises
`CommandFailed`, whose `result` holds what was created before the failure.

The modules:

- `taskval.models` – task documents and validation findings
- `taskval.structure` – structural checks (`SchemaValidator`)
- `taskval.semantic` – semantic checks (`SemanticValidator`)
- `taskval.validate` – `validate()` and `Mode`
- `taskval.mapping` – priority, estimate, description and metadata mapping
- `taskval.commands` – building and formatting `bd` commands
- `taskval.executor` – running `bd`
- `taskval.cli` – the `taskval` command

## Limits

The structural checks use a description of the task format built into
`taskval.structure`; there is no separate JSON Schema file, and messages are
the package's own. Issue creation needs the external `bd` program; the
package does not talk to a Beads database by itself.

## Running the tests

```
pip install ".[test]"
pytest
```