"""
Live network share measurements.

EL shares come from the daily Ethernodes snapshot committed to the
clientdiversity.org repository; CL shares come from Blockprint's block
classification over roughly the last seven days. When a source is
unavailable the static shares in `clients.CLIENTS` are kept.
"""

from eth_dep_collector.console import console, warn
from eth_dep_collector.http_client import get_json
from eth_dep_collector.models import ClientDescriptor, Layer, NetworkShareResult

BLOCKPRINT_API = "https://api.blockprint.sigp.io"
ETHERNODES_RAW_URL = (
    "https://raw.githubusercontent.com/etheralpha/clientdiversity-org/main/"
    "_data/raw/ethernodes_raw.json"
)

SLOTS_PER_EPOCH = 32
# ~7 days at 6.4 minutes per epoch
CL_WINDOW_EPOCHS = 1575

# Blockprint client name -> client id
BLOCKPRINT_TO_ID = {
    "Lighthouse": "lighthouse",
    "Prysm": "prysm",
    "Teku": "teku",
    "Nimbus": "nimbus",
    "Lodestar": "lodestar",
}

# Ethernodes client name -> client id
ETHERNODES_TO_ID = {
    "geth": "geth",
    "nethermind": "nethermind",
    "besu": "besu",
    "erigon": "erigon",
    "reth": "reth",
}


def blocks_to_shares(blocks_per_client: dict[str, int]) -> dict[str, float]:
    """Blockprint block counts -> CL share per client id."""
    total = sum(blocks_per_client.values())
    if total == 0:
        raise ValueError("blockprint returned zero blocks")
    return {
        client_id: blocks_per_client.get(name, 0) / total
        for name, client_id in BLOCKPRINT_TO_ID.items()
    }


def snapshot_to_shares(entries: list[dict]) -> tuple[dict[str, float], str]:
    """Latest Ethernodes snapshot -> (EL share per client id, snapshot date)."""
    if not entries:
        raise ValueError("ethernodes data is empty")
    latest = entries[-1]
    counts = latest.get("data", {}).get("data", [])
    total = sum(c.get("value", 0) for c in counts)
    if total == 0:
        raise ValueError("ethernodes returned zero nodes")

    shares: dict[str, float] = {}
    for item in counts:
        client_id = ETHERNODES_TO_ID.get(str(item.get("client", "")).lower())
        if client_id:
            shares[client_id] = item.get("value", 0) / total
    return shares, str(latest.get("date", ""))


async def fetch_cl_shares() -> tuple[dict[str, float], tuple[int, int]]:
    status = await get_json(f"{BLOCKPRINT_API}/sync/status", description="blockprint sync/status")
    current_epoch = int(status["greatest_block_slot"]) // SLOTS_PER_EPOCH
    start_epoch = current_epoch - CL_WINDOW_EPOCHS
    data = await get_json(
        f"{BLOCKPRINT_API}/blocks_per_client/{start_epoch}/{current_epoch}",
        description="blockprint blocks_per_client",
    )
    return blocks_to_shares(data), (start_epoch, current_epoch)


async def fetch_el_shares() -> tuple[dict[str, float], str]:
    entries = await get_json(ETHERNODES_RAW_URL, description="ethernodes snapshot")
    return snapshot_to_shares(entries)


def _format_shares(shares: dict[str, float]) -> str:
    return ", ".join(f"{cid}={share * 100:.1f}%" for cid, share in shares.items())


async def fetch_network_shares() -> NetworkShareResult:
    """
    Fetch both layers' shares; a failing source falls back to static values.

    Any exception from a source is treated as unavailability: it is reported
    as a warning and never fails the run.
    """
    el_shares: dict[str, float] = {}
    cl_shares: dict[str, float] = {}
    el_source, cl_source = "hardcoded", "hardcoded"
    el_as_of: str | None = None
    cl_epochs: tuple[int, int] | None = None

    try:
        cl_shares, cl_epochs = await fetch_cl_shares()
        cl_source = "blockprint"
        console.print(
            f"  CL shares from Blockprint (epochs {cl_epochs[0]}-{cl_epochs[1]}): "
            f"{_format_shares(cl_shares)}"
        )
    except Exception as e:
        warn(f"  Could not fetch CL shares from Blockprint, using static values: {e}")

    try:
        el_shares, el_as_of = await fetch_el_shares()
        el_source = "ethernodes"
        console.print(f"  EL shares from Ethernodes (as of {el_as_of}): {_format_shares(el_shares)}")
    except Exception as e:
        warn(f"  Could not fetch EL shares from Ethernodes, using static values: {e}")

    shares = {
        client_id: (el_shares.get(client_id, 0.0), cl_shares.get(client_id, 0.0))
        for client_id in [*el_shares, *cl_shares]
    }
    return NetworkShareResult(shares, el_source, cl_source, el_as_of, cl_epochs)


def apply_network_shares(
    clients: list[ClientDescriptor], result: NetworkShareResult
) -> list[ClientDescriptor]:
    """
    New descriptors carrying live shares where the client's layer had live data.

    A client keeps its static share when its layer fell back to static values
    or when the live source did not report it.
    """
    updated: list[ClientDescriptor] = []
    for client in clients:
        live = result.shares.get(client.id)
        if client.layer == Layer.EL and result.el_source != "hardcoded" and live:
            client = client._replace(el_network_share=live[0], cl_network_share=0.0)
        elif client.layer == Layer.CL and result.cl_source != "hardcoded" and live:
            client = client._replace(el_network_share=0.0, cl_network_share=live[1])
        updated.append(client)
    return updated
