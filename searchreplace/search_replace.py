"""
SearchReplace - configuration and batched execution engine.

SearchReplace implements:
- Fluent configuration (search/replace specs, table selection, ranges, batch size)
- Table resolution via the selection algebra (searchreplace.selection)
- Batched row scanning with per-row substitution and write-back
- Raise/collect delivery of configuration errors

Execution flow:
1. Validate prerequisites (gateway bound, something selected) and build the
   substitution from the search/replace specs
2. Snapshot configuration into an immutable RunPlan
3. Resolve tables (include-all listing, includes, excludes), apply table range
4. For each table: fetch row batches within the row range, substitute every
   textual column, write back rows that changed
5. Return an ExecutionReport (COMPLETED or FAILED)

Fatal: ConnectionError/QueryError abort the run (already-applied writes stay).
Row-scoped: WriteError (or a write matching no row) is counted and skipped.
"""

import logging
import threading
from datetime import datetime, timezone
from numbers import Integral
from typing import Any, Iterable, Optional, Union

from searchreplace.errors import (
    ConfigurationError,
    ExecutionError,
    GatewayError,
    WriteError,
)
from searchreplace.gateway import Gateway, GatewayConfig, Row, create_gateway, from_connection
from searchreplace.plan import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_LIMIT,
    DEFAULT_OFFSET,
    Range,
    RunPlan,
    iter_batch_windows,
)
from searchreplace.report import ExecutionReport, RunState, TableReport
from searchreplace.selection import TableSelection
from searchreplace.substitution import (
    ReplaceSpec,
    SearchSpec,
    Substitution,
    build_substitution,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _count_problem(
    value: Any,
    name: str,
    allow_none: bool = False,
    minimum: int = 0,
) -> Optional[str]:
    """Return an error message if value is not an acceptable count, else None."""
    if value is None:
        return None if allow_none else f"{name} cannot be empty"
    if isinstance(value, bool):
        return f"{name} must be an integer, got {value!r}"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, Integral):
        return f"{name} must be an integer, got {value!r}"
    if value < minimum:
        if minimum == 0:
            return f"{name} cannot be negative, got {value}"
        return f"{name} must be at least {minimum}, got {value}"
    return None


def _as_count(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _table_names(names: Union[str, Iterable[str]]) -> list[str]:
    if isinstance(names, str):
        return [names]
    return list(names)


class SearchReplace:
    """
    Bulk search/replace over the tables of a database.

    Usage:
        from searchreplace import SearchReplace

        report = (
            SearchReplace("db.example.com", "app", "secret", "app_db")
            .search("http://old.example.com")
            .replace("https://new.example.com")
            .include_all_tables()
            .exclude_tables(["sessions"])
            .set_table_rows_per_batch(500)
            .execute()
        )

    Setters never perform I/O. In raise mode (the default) configuration
    errors raise ConfigurationError; after disable_exceptions() they are
    collected in `errors` instead and the setter leaves state unchanged.
    """

    DEFAULT_TABLE_ROW_OFFSET = DEFAULT_OFFSET
    DEFAULT_TABLE_ROW_LIMIT = DEFAULT_LIMIT
    DEFAULT_TABLE_ROWS_PER_BATCH = DEFAULT_BATCH_SIZE

    def __init__(
        self,
        gateway_or_host: Any = None,
        username: str = "",
        password: str = "",
        database: str = "",
        port: Optional[int] = None,
        backend: str = "mysql",
    ):
        """
        Initialize the orchestrator, optionally binding a database.

        Args:
            gateway_or_host: Gateway, native connection handle, or hostname
                             (SQLite path when backend="sqlite")
            username: Database user for discrete parameters
            password: Database password, may be empty
            database: Database name for discrete parameters
            port: Optional TCP port
            backend: Backend used when constructing from discrete parameters
        """
        self._search: Optional[SearchSpec] = None
        self._replace: ReplaceSpec = ReplaceSpec("")
        self._gateway: Optional[Gateway] = None
        self._selection = TableSelection()
        self._table_range = Range()
        self._row_range = Range(self.DEFAULT_TABLE_ROW_OFFSET, self.DEFAULT_TABLE_ROW_LIMIT)
        self._batch_size = self.DEFAULT_TABLE_ROWS_PER_BATCH

        self._exceptions = True
        self._errors: list[str] = []
        self._validated = False
        self._state = RunState.CONFIGURED
        self._busy = threading.Lock()

        if gateway_or_host:
            self.set_database(gateway_or_host, username, password, database, port=port, backend=backend)

    # ------------------------------------------------------------------
    # Error delivery
    # ------------------------------------------------------------------

    def throw_error(self, message: str, return_value: Any = None) -> Any:
        """
        Deliver a configuration error according to the raise/collect toggle.

        Args:
            message: Error message
            return_value: Returned instead of raising in collect mode

        Raises:
            ConfigurationError: In raise mode
        """
        if self._exceptions:
            raise ConfigurationError(message)

        logger.warning(message)
        self._errors.append(message)
        return return_value

    def enable_exceptions(self) -> "SearchReplace":
        self._exceptions = True
        return self

    def disable_exceptions(self) -> "SearchReplace":
        self._exceptions = False
        return self

    @property
    def errors(self) -> list[str]:
        """Errors collected during configuration, validation and execution."""
        return list(self._errors)

    @property
    def validated(self) -> bool:
        return self._validated

    @property
    def state(self) -> RunState:
        return self._state

    # ------------------------------------------------------------------
    # Search / replace
    # ------------------------------------------------------------------

    def search(self, term: str, regex: bool = False) -> "SearchReplace":
        """Set the search term; regex=True treats it as a regular expression."""
        self._search = SearchSpec(term, bool(regex))
        return self

    def replace(self, term: str, regex: bool = False) -> "SearchReplace":
        """Set the replacement; regex=True allows group references (\\1, \\g<name>)."""
        self._replace = ReplaceSpec(term, bool(regex))
        return self

    def get_search(self) -> Optional[SearchSpec]:
        return self._search

    def get_replace(self) -> ReplaceSpec:
        return self._replace

    # ------------------------------------------------------------------
    # Database binding
    # ------------------------------------------------------------------

    def db(self) -> Optional[Gateway]:
        """Return the bound gateway."""
        return self._gateway

    def set_database(
        self,
        gateway_or_host: Any = None,
        username: str = "",
        password: str = "",
        database: str = "",
        port: Optional[int] = None,
        backend: str = "mysql",
    ) -> "SearchReplace":
        """
        Bind the gateway this orchestrator runs against.

        Accepts, in order of precedence:
        - a Gateway instance (stored as-is, shared with the caller)
        - a native connection handle (sqlite3 / PyMySQL), wrapped without
          credential checks
        - discrete parameters, constructing the adapter for `backend`; for
          sqlite the first argument is the database path

        No connection is opened here.

        Raises:
            ConfigurationError: If the resource/host is empty, or username or
                                database are empty for a network backend
        """
        if not gateway_or_host:
            return self.throw_error("set_database(): Database resource/hostname cannot be empty", self)

        if isinstance(gateway_or_host, Gateway):
            self._gateway = gateway_or_host
            return self

        if not isinstance(gateway_or_host, str):
            try:
                self._gateway = from_connection(gateway_or_host)
            except ConfigurationError as e:
                return self.throw_error(f"set_database(): {e}", self)
            return self

        if backend == "sqlite":
            config = GatewayConfig(backend=backend, sqlite_path=gateway_or_host)
        else:
            if not username:
                return self.throw_error("set_database(): Username parameter cannot be empty.", self)
            if not database:
                return self.throw_error("set_database(): Database name parameter cannot be empty.", self)
            config = GatewayConfig(
                backend=backend,
                host=gateway_or_host,
                username=username,
                password=password or "",
                database=database,
                port=port,
            )

        try:
            self._gateway = create_gateway(config)
        except ConfigurationError as e:
            return self.throw_error(f"set_database(): {e}", self)
        return self

    # ------------------------------------------------------------------
    # Table selection
    # ------------------------------------------------------------------

    def include_all_tables(self, include_all: bool = True) -> "SearchReplace":
        """Start table resolution from every table the gateway lists."""
        if not isinstance(include_all, bool):
            return self.throw_error("include_all_tables(): Non-boolean value supplied.", self)

        self._selection = self._selection.with_include_all(include_all)
        return self

    def include_tables(self, tables: Union[str, Iterable[str]], override: bool = False) -> "SearchReplace":
        """Add tables to process; override=True replaces the include list."""
        names = _table_names(tables)
        if not all(isinstance(name, str) and name for name in names):
            return self.throw_error("include_tables(): Table names must be non-empty strings.", self)

        self._selection = self._selection.with_included(names, override)
        return self

    def exclude_tables(self, tables: Union[str, Iterable[str]], override: bool = False) -> "SearchReplace":
        """Add tables to skip; override=True replaces the exclude set."""
        names = _table_names(tables)
        if not all(isinstance(name, str) and name for name in names):
            return self.throw_error("exclude_tables(): Table names must be non-empty strings.", self)

        self._selection = self._selection.with_excluded(names, override)
        return self

    def reset_tables(self) -> "SearchReplace":
        """Clear includes and excludes (the include-all flag is kept)."""
        self._selection = self._selection.cleared()
        return self

    def get_table_selection(self) -> TableSelection:
        return self._selection

    def get_table_includes(self) -> list[str]:
        return list(self._selection.included)

    def get_table_excludes(self) -> list[str]:
        return sorted(self._selection.excluded)

    def get_tables(self) -> list[str]:
        """
        Resolve the table list against the bound gateway.

        Lists tables on the gateway only when include-all is set. The table
        range is not applied here.

        Returns:
            Ordered, deduplicated table names

        Raises:
            ConfigurationError: If no gateway is bound
            ConnectionError, QueryError: If listing tables fails
        """
        if self._gateway is None:
            return self.throw_error("get_tables(): Database connection not provided.", [])

        all_tables = self._gateway.list_tables() if self._selection.include_all else []
        return self._selection.resolve(all_tables)

    # ------------------------------------------------------------------
    # Ranges and batching
    # ------------------------------------------------------------------

    def set_table_offset(self, offset: int) -> "SearchReplace":
        """Skip the first `offset` resolved tables (resume a multi-table job)."""
        problem = _count_problem(offset, "Table offset")
        if problem:
            return self.throw_error(f"set_table_offset(): {problem}", self)

        self._table_range = Range(int(offset), self._table_range.limit)
        return self

    def set_table_limit(self, limit: Optional[int]) -> "SearchReplace":
        """Process at most `limit` tables; None for no limit."""
        problem = _count_problem(limit, "Table limit", allow_none=True)
        if problem:
            return self.throw_error(f"set_table_limit(): {problem}", self)

        self._table_range = Range(self._table_range.offset, _as_count(limit))
        return self

    def set_table_range(self, offset: int, limit: Optional[int]) -> "SearchReplace":
        """Set table offset and limit together; neither changes if either is invalid."""
        problem = _count_problem(offset, "Table offset") or _count_problem(
            limit, "Table limit", allow_none=True
        )
        if problem:
            return self.throw_error(f"set_table_range(): {problem}", self)

        self._table_range = Range(int(offset), _as_count(limit))
        return self

    def get_table_offset(self) -> int:
        return self._table_range.offset

    def get_table_limit(self) -> Optional[int]:
        return self._table_range.limit

    def set_table_row_offset(self, offset: int) -> "SearchReplace":
        """Start each table at row `offset` (resume a partially processed table)."""
        problem = _count_problem(offset, "Table row offset")
        if problem:
            return self.throw_error(f"set_table_row_offset(): {problem}", self)

        self._row_range = Range(int(offset), self._row_range.limit)
        return self

    def set_table_row_limit(self, limit: Optional[int]) -> "SearchReplace":
        """Process at most `limit` rows per table; None for no limit."""
        problem = _count_problem(limit, "Table row limit", allow_none=True)
        if problem:
            return self.throw_error(f"set_table_row_limit(): {problem}", self)

        self._row_range = Range(self._row_range.offset, _as_count(limit))
        return self

    def set_table_row_range(self, offset: int, limit: Optional[int]) -> "SearchReplace":
        """Set row offset and limit together; neither changes if either is invalid."""
        problem = _count_problem(offset, "Table row offset") or _count_problem(
            limit, "Table row limit", allow_none=True
        )
        if problem:
            return self.throw_error(f"set_table_row_range(): {problem}", self)

        self._row_range = Range(int(offset), _as_count(limit))
        return self

    def get_table_row_offset(self) -> int:
        return self._row_range.offset

    def get_table_row_limit(self) -> Optional[int]:
        return self._row_range.limit

    def set_table_rows_per_batch(self, rows_per_batch: int) -> "SearchReplace":
        """Set how many rows are fetched per gateway round-trip."""
        problem = _count_problem(rows_per_batch, "Rows per batch", minimum=1)
        if problem:
            return self.throw_error(f"set_table_rows_per_batch(): {problem}", self)

        self._batch_size = int(rows_per_batch)
        return self

    def get_table_rows_per_batch(self) -> int:
        return self._batch_size

    # ------------------------------------------------------------------
    # Validation / reset
    # ------------------------------------------------------------------

    def validate(self) -> list[str]:
        """
        Check prerequisites without contacting the gateway.

        Returns:
            Empty list iff a gateway is bound and include-all is set or at
            least one table is included
        """
        problems = []
        if self._gateway is None:
            problems.append("Database connection not provided.")
        if self._selection.is_empty:
            problems.append("No tables selected: call include_all_tables() or include_tables().")

        for problem in problems:
            if problem not in self._errors:
                self._errors.append(problem)
        self._validated = not problems
        if self._validated and self._state == RunState.CONFIGURED:
            self._state = RunState.VALIDATED
        return problems

    def verify_prereqs(self) -> list[str]:
        return self.validate()

    def reset(self) -> "SearchReplace":
        """
        Reset the request for another go-round.

        Clears table includes/excludes, the table range, the row range and
        collected errors. Search/replace specs, include-all, batch size and
        the bound gateway are kept.
        """
        self._selection = self._selection.cleared()
        self._table_range = Range()
        self._row_range = Range(self.DEFAULT_TABLE_ROW_OFFSET, self.DEFAULT_TABLE_ROW_LIMIT)
        self._errors = []
        self._validated = False
        self._state = RunState.CONFIGURED
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def plan(self, dry_run: bool = False) -> RunPlan:
        """Snapshot the current configuration."""
        return RunPlan(
            search=self._search or SearchSpec(""),
            replace=self._replace,
            selection=self._selection,
            table_range=self._table_range,
            row_range=self._row_range,
            batch_size=self._batch_size,
            dry_run=dry_run,
        )

    def execute(
        self,
        substitution: Optional[Substitution] = None,
        dry_run: bool = False,
    ) -> ExecutionReport:
        """
        Run the search/replace.

        Args:
            substitution: Strategy to apply instead of one built from the
                          search/replace specs
            dry_run: Count rows that would change without writing them

        Returns:
            ExecutionReport with status COMPLETED or FAILED

        Raises:
            ConfigurationError: In raise mode, if prerequisites are missing,
                                the search pattern is invalid, or a run is
                                already in flight on this instance
        """
        if not self._busy.acquire(blocking=False):
            message = "execute(): A run is already in progress on this instance"
            self.throw_error(message)
            return self._config_failure(message, dry_run)

        try:
            self._state = RunState.CONFIGURED
            problems = self.validate()
            if problems:
                message = "execute(): " + " ".join(problems)
                if self._exceptions:
                    raise ConfigurationError(message)
                return self._config_failure(message, dry_run)

            plan = self.plan(dry_run)
            if substitution is None:
                try:
                    substitution = build_substitution(plan.search, plan.replace)
                except ConfigurationError as e:
                    self.throw_error(f"execute(): {e}")
                    return self._config_failure(str(e), dry_run)

            try:
                return self._run(plan, substitution)
            except Exception:
                self._state = RunState.FAILED
                raise
        finally:
            self._busy.release()

    def _config_failure(self, message: str, dry_run: bool) -> ExecutionReport:
        now = _utcnow()
        return ExecutionReport(
            status=RunState.FAILED,
            error=ExecutionError(None, message, cause=ConfigurationError(message)),
            errors=self.errors,
            dry_run=dry_run,
            started_at=now,
            completed_at=now,
        )

    def _run(self, plan: RunPlan, substitution: Substitution) -> ExecutionReport:
        report = ExecutionReport(status=RunState.RUNNING, dry_run=plan.dry_run, started_at=_utcnow())
        gateway = self._gateway

        self._state = RunState.RESOLVING
        try:
            all_tables = gateway.list_tables() if plan.selection.include_all else []
        except GatewayError as e:
            return self._fail(report, None, e)

        worklist = plan.worklist(all_tables)
        logger.info(
            f"Resolved {len(worklist)} table(s) to process"
            + (" (dry run)" if plan.dry_run else "")
        )

        self._state = RunState.RUNNING
        for table in worklist:
            table_report = TableReport(table)
            report.tables.append(table_report)
            try:
                self._process_table(plan, substitution, table, table_report)
            except GatewayError as e:
                return self._fail(report, table, e)
            logger.info(
                f"{table}: scanned={table_report.rows_scanned} "
                f"changed={table_report.rows_changed} failed={table_report.rows_failed}",
                extra={"table": table},
            )

        self._state = RunState.COMPLETED
        report.status = RunState.COMPLETED
        report.errors = self.errors
        report.completed_at = _utcnow()
        return report

    def _fail(self, report: ExecutionReport, table: Optional[str], cause: Exception) -> ExecutionReport:
        error = ExecutionError(table, str(cause), cause=cause)
        logger.error(str(error), extra={"table": table})
        self._errors.append(str(error))
        self._state = RunState.FAILED
        report.status = RunState.FAILED
        report.error = error
        report.errors = self.errors
        report.completed_at = _utcnow()
        return report

    def _process_table(
        self,
        plan: RunPlan,
        substitution: Substitution,
        table: str,
        table_report: TableReport,
    ) -> None:
        gateway = self._gateway
        for window in iter_batch_windows(plan.row_range, plan.batch_size):
            rows = gateway.fetch_rows(table, window.offset, window.size)
            logger.debug(f"{table}: fetched {len(rows)} row(s) at offset {window.offset}")

            for row in rows:
                table_report.rows_scanned += 1
                changes = substitute_row(row, substitution)
                if not changes:
                    continue
                if plan.dry_run:
                    table_report.rows_changed += 1
                    continue
                self._write(table, row, changes, table_report)

            if len(rows) < window.size:
                break

    def _write(self, table: str, row: Row, changes: dict[str, Any], table_report: TableReport) -> None:
        try:
            written = self._gateway.write_row(table, row.key, changes)
        except WriteError as e:
            table_report.rows_failed += 1
            logger.warning(f"{table}: write failed for {row.key}: {e}", extra={"table": table})
            self._errors.append(str(e))
            return

        if written:
            table_report.rows_changed += 1
        else:
            table_report.rows_failed += 1
            message = f"{table}: no row matched key {row.key}"
            logger.warning(message, extra={"table": table})
            self._errors.append(message)


def substitute_row(row: Row, substitution: Substitution) -> dict[str, Any]:
    """
    Apply a substitution to every textual column of a row.

    Returns:
        Column -> new value for the columns that changed (empty if none)
    """
    changes = {}
    for column, value in row.values.items():
        if not isinstance(value, str):
            continue
        replaced = substitution.apply(value)
        if replaced != value:
            changes[column] = replaced
    return changes
