import argparse
import os
import sys
import logging
import asyncio
import json
from typing import List, Literal, Optional
from pydantic import BaseModel, Field
from uvicorn import Config, Server
from ...protocol.types.common import ProtocolError, ValidationError
from ...protocol.types.delegation import Delegation
from ...protocol.crypto.addresses import address_from_seed
from ...protocol.config.params import NETWORKS, DECIMALS
from ..core.clock import BlockClock, make_clock
from ..core.ledger import TokenLedger
from ..storage.db import StorageDB
from ..rpc import api  # import module to set globals

logger = logging.getLogger(__name__)


class ReplayOp(BaseModel):
    """One line of a replay file."""
    op: Literal["mint", "burn", "transfer", "delegate", "advance"]
    account: Optional[str] = None
    to: Optional[str] = None
    amount: int = 0
    blocks: int = 1
    delegations: List[Delegation] = Field(default_factory=list)


def open_ledger(data_dir: str, network: str) -> TokenLedger:
    config = NETWORKS[network]
    db = StorageDB(os.path.join(data_dir, "state.db"))
    ledger = TokenLedger(config=config, clock=make_clock(config.clock_mode), db=db)
    ledger.load()
    return ledger


def cmd_init(args):
    """Initialize node: data dir, devnet genesis allocation."""
    data_dir = args.datadir
    os.makedirs(data_dir, exist_ok=True)

    genesis_path = os.path.join(data_dir, "genesis.json")
    if os.path.exists(genesis_path):
        print(f"Genesis already exists at {genesis_path}")
        return

    alloc = {
        address_from_seed(f"devnet-{i}"): 1_000_000 * 10**DECIMALS
        for i in range(args.accounts)
    }

    ledger = open_ledger(data_dir, args.network)
    for addr, amount in alloc.items():
        ledger.mint(addr, amount)
    if isinstance(ledger.clock, BlockClock):
        ledger.clock.advance()
    ledger.persist()

    with open(genesis_path, "w") as f:
        json.dump({"network": args.network, "alloc": {k: str(v) for k, v in alloc.items()}}, f, indent=2)

    print(f"Node initialized in {data_dir}")
    for addr in alloc:
        print(f"Account: {addr}")


def apply_op(ledger: TokenLedger, op: ReplayOp):
    if op.op == "mint":
        ledger.mint(op.to, op.amount)
    elif op.op == "burn":
        ledger.burn(op.account, op.amount)
    elif op.op == "transfer":
        ledger.transfer(op.account, op.to, op.amount)
    elif op.op == "delegate":
        ledger.set_delegations(op.account, op.delegations)
    elif op.op == "advance":
        if not isinstance(ledger.clock, BlockClock):
            raise ValidationError("advance is only supported with a block number clock")
        ledger.clock.advance(op.blocks)


def cmd_replay(args):
    """Apply a JSON list of operations and persist the result."""
    ledger = open_ledger(args.datadir, args.network)

    with open(args.file, "r") as f:
        ops = [ReplayOp.model_validate(o) for o in json.load(f)]

    applied = 0
    for i, op in enumerate(ops):
        try:
            apply_op(ledger, op)
            applied += 1
        except ProtocolError as e:
            logger.warning(f"Operation {i} ({op.op}) rejected: {e}")
            if args.strict:
                ledger.persist()
                sys.exit(1)

    ledger.persist()
    print(f"Applied {applied}/{len(ops)} operations. Clock: {ledger.query.clock()}")
    print(f"Total supply: {ledger.query.current_total_supply()}")


async def run_node_async(args):
    ledger = open_ledger(args.datadir, args.network)

    # Inject into RPC module (global vars)
    api.ledger = ledger

    print(f"Starting splitvote node...")
    print(f"Data dir: {args.datadir}")
    print(f"RPC: {args.host}:{args.port}")

    config = Config(app=api.app, host=args.host, port=args.port, log_level="info")
    server = Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        pass
    finally:
        ledger.persist()
        ledger.db.close()


def cmd_run(args):
    """Wrapper to run async main."""
    try:
        asyncio.run(run_node_async(args))
    except KeyboardInterrupt:
        pass


def main(argv=None):
    parser = argparse.ArgumentParser(description="splitvote Node CLI")
    parser.add_argument("--datadir", default="./.splitvote", help="Data directory")
    parser.add_argument("--network", default="devnet", choices=sorted(NETWORKS.keys()), help="Network preset")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Init command
    init_parser = subparsers.add_parser("init", help="Initialize node data and genesis")
    init_parser.add_argument("--accounts", type=int, default=3, help="Number of devnet accounts to fund")

    # Replay command
    replay_parser = subparsers.add_parser("replay", help="Apply operations from a JSON file")
    replay_parser.add_argument("file", help="JSON list of operations")
    replay_parser.add_argument("--strict", action="store_true", help="Stop at the first rejected operation")

    # Run command
    run_parser = subparsers.add_parser("run", help="Serve the query API")
    run_parser.add_argument("--host", default="0.0.0.0", help="RPC Host")
    run_parser.add_argument("--port", type=int, default=8000, help="RPC Port")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.command == "init":
        cmd_init(args)
    elif args.command == "replay":
        cmd_replay(args)
    elif args.command == "run":
        cmd_run(args)

if __name__ == "__main__":
    main()
