"""
Per-client collection.

Each client is collected from its latest release: the plan in `clients.PLANS`
names the primary document, the parser to run over it, and the native scan
that complements it. Clients run one after another to stay inside the GitHub
rate limits; within one client, independent file fetches run concurrently.
"""

import asyncio
from datetime import datetime, timezone
from typing import Protocol

from rich.markup import escape

from eth_dep_collector.clients import CollectionPlan, get_plan
from eth_dep_collector.console import console, warn
from eth_dep_collector.github import UNPINNED_REF
from eth_dep_collector.models import ClientDescriptor, ClientResult, FailedClient, RawDependency
from eth_dep_collector.native.cratesio import resolve_wrapper_crates
from eth_dep_collector.native.scanner import scan_native_references
from eth_dep_collector.parsers import SourceFormat, get_parser, parse_document
from eth_dep_collector.parsers.cargo import (
    cargo_workspace_members,
    parse_cargo_dev_dependencies,
    parse_cargo_lock,
)
from eth_dep_collector.parsers.gosum import apply_replacements, parse_go_mod_replacements

UNPINNED_LIMITATION = "No published release: default branch head was scanned"

# Failure count beyond which the dataset is flagged as substantially incomplete
MAX_FAILED_CLIENTS = 3


class RepositoryHost(Protocol):
    """Code host operations used during collection."""

    async def get_latest_tag(self, repo: str) -> str | None: ...

    async def fetch_raw(self, repo: str, ref: str, path: str) -> str: ...

    async def search_code(self, repo: str, query: str) -> list[str]: ...


async def resolve_ref(host: RepositoryHost, repo: str) -> tuple[str, bool]:
    """(ref to scan, whether it is a release tag)."""
    tag = await host.get_latest_tag(repo)
    if tag is None:
        return UNPINNED_REF, False
    return tag, True


async def collect_cargo_dev_deps(
    host: RepositoryHost, repo: str, ref: str, root_manifest: str, members: bool = True
) -> set[str]:
    """
    Dev-dependency names across a Cargo workspace.

    Reads the root manifest and, when ``members`` is set, every listed member's
    Cargo.toml. Member manifests are fetched concurrently; a failed fetch only
    narrows the dev set and is reported as one warning.
    """
    dev_names = parse_cargo_dev_dependencies(root_manifest)
    if not members:
        return dev_names

    member_paths = cargo_workspace_members(root_manifest)
    if not member_paths:
        return dev_names

    results = await asyncio.gather(
        *(host.fetch_raw(repo, ref, f"{path}/Cargo.toml") for path in member_paths),
        return_exceptions=True,
    )
    failed = 0
    for result in results:
        if isinstance(result, BaseException):
            failed += 1
            continue
        dev_names.update(parse_cargo_dev_dependencies(result))

    if failed:
        warn(
            f"  {repo}: {failed}/{len(member_paths)} workspace member Cargo.toml "
            "fetches failed, dev dep filtering may be incomplete"
        )
    return dev_names


def _report_parse_warnings(client_id: str, warnings: list[str]) -> None:
    if not warnings:
        return
    console.print(f"[dim]  {client_id}: {len(warnings)} entries skipped while parsing[/dim]")
    for message in warnings[:5]:
        console.print(f"[dim]    {escape(message)}[/dim]")


async def collect_client(
    client: ClientDescriptor,
    host: RepositoryHost,
    plan: CollectionPlan | None = None,
) -> ClientResult:
    """
    Collect one client's dependencies at its latest release.

    Raises:
        FetchError: When a required document or the code search fails.
    """
    plan = plan or get_plan(client.id)
    repo = client.repo
    ref, tag_pinned = await resolve_ref(host, repo)

    limitations = list(plan.limitations) + list(get_parser(plan.source_format).limitations)
    if not tag_pinned:
        limitations.append(UNPINNED_LIMITATION)

    paths = [plan.document]
    if plan.go_mod_replacements:
        paths.append("go.mod")
    if plan.source_format == SourceFormat.CARGO_LOCK:
        paths.append("Cargo.toml")
    documents = dict(
        zip(paths, await asyncio.gather(*(host.fetch_raw(repo, ref, p) for p in paths)))
    )

    if plan.source_format == SourceFormat.CARGO_LOCK:
        dev_names = await collect_cargo_dev_deps(
            host, repo, ref, documents["Cargo.toml"], members=plan.member_dev_deps
        )
        parsed = parse_cargo_lock(documents[plan.document], dev_names)
    else:
        parsed = parse_document(plan.source_format, documents[plan.document], plan.self_module)
    _report_parse_warnings(client.id, parsed.warnings)

    records: list[RawDependency] = parsed.records
    if plan.go_mod_replacements:
        records = apply_replacements(records, parse_go_mod_replacements(documents["go.mod"]))

    native: list[RawDependency] = []
    if plan.resolve_wrapper_crates:
        native.extend(await resolve_wrapper_crates(records))
    if plan.native_scan is not None:
        native.extend(await scan_native_references(host, repo, ref, plan.native_scan))

    return ClientResult(
        client=client,
        scanned_tag=ref,
        scanned_at=datetime.now(timezone.utc).isoformat(),
        tag_pinned=tag_pinned,
        deps=records + native,
        limitations=limitations,
    )


async def run_collection(
    clients: list[ClientDescriptor], host: RepositoryHost
) -> tuple[list[ClientResult], list[FailedClient]]:
    """
    Collect every client in order, isolating failures.

    A client that raises is recorded as a FailedClient and the run continues.
    """
    results: list[ClientResult] = []
    failed: list[FailedClient] = []

    for client in clients:
        console.print(f"  {client.id}: collecting...")
        try:
            result = await collect_client(client, host)
        except Exception as e:
            message = str(e) or type(e).__name__
            console.print(f"[red]  {client.id}: FAILED: {escape(message)}[/red]")
            failed.append(FailedClient(client.id, message))
            continue

        prod_count = sum(1 for d in result.deps if not d.is_dev)
        console.print(f"  {client.id}: done, {prod_count} prod deps (tag: {result.scanned_tag})")
        results.append(result)

    if failed:
        warn(f"\n{len(failed)} client(s) failed: {', '.join(f.id for f in failed)}")
        if len(failed) > MAX_FAILED_CLIENTS:
            warn(
                f"More than {MAX_FAILED_CLIENTS} clients failed: "
                "output may be significantly incomplete"
            )
    return results, failed
