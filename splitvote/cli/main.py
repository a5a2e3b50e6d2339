# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import sys
import json
import requests
import os
from ..protocol.config.params import DECIMALS, DENOM, DENOMINATOR

DEFAULT_NODE = "http://localhost:8000"

def get_node_url(args):
    return args.node or os.environ.get("SVT_NODE", DEFAULT_NODE)

def _get(args, path: str) -> dict:
    url = get_node_url(args)
    try:
        resp = requests.get(f"{url}{path}", timeout=10)
    except requests.RequestException as e:
        print(f"Error: cannot reach node at {url}: {e}")
        sys.exit(1)
    if resp.status_code != 200:
        print(f"Error: {resp.text}")
        sys.exit(1)
    return resp.json()

def _fmt(amount: str) -> str:
    return f"{int(amount) / 10**DECIMALS} {DENOM}"

# --- Query Commands ---
def cmd_status(args):
    print(json.dumps(_get(args, "/status"), indent=2))

def cmd_votes(args):
    if args.at is not None:
        data = _get(args, f"/votes/{args.delegatee}/at/{args.at}")
        print(f"Votes at {data['time']}: {_fmt(data['votes'])}")
    else:
        data = _get(args, f"/votes/{args.delegatee}")
        print(f"Votes: {_fmt(data['votes'])}")

def cmd_checkpoints(args):
    data = _get(args, f"/votes/{args.delegatee}/checkpoints")
    print(f"{'Time':<12} {'Votes':>30}")
    print("-" * 43)
    for ckpt in data:
        print(f"{ckpt['time']:<12} {ckpt['value']:>30}")

def cmd_supply(args):
    if args.at is not None:
        data = _get(args, f"/total_supply/at/{args.at}")
        print(f"Total supply at {data['time']}: {_fmt(data['total_supply'])}")
    else:
        data = _get(args, "/total_supply")
        print(f"Total supply: {_fmt(data['total_supply'])}")

def cmd_delegations(args):
    data = _get(args, f"/delegations/{args.account}")
    if not data['delegations']:
        print("No delegations (balance is not counted as voting power).")
        return
    print(f"{'Delegatee':<45} {'Share':>8}")
    print("-" * 54)
    for d in data['delegations']:
        print(f"{d['delegatee']:<45} {d['numerator'] * 100 / DENOMINATOR:>7.2f}%")

def cmd_balance(args):
    data = _get(args, f"/balance/{args.address}")
    print(f"Balance: {_fmt(data['balance'])}")

def main(argv=None):
    parser = argparse.ArgumentParser(description="splitvote query client")
    parser.add_argument("--node", help="Node RPC URL (default: $SVT_NODE or http://localhost:8000)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Node status").set_defaults(func=cmd_status)

    p = subparsers.add_parser("votes", help="Voting power of a delegatee")
    p.add_argument("delegatee")
    p.add_argument("--at", type=int, help="Historical clock value")
    p.set_defaults(func=cmd_votes)

    p = subparsers.add_parser("checkpoints", help="Checkpoint history of a delegatee")
    p.add_argument("delegatee")
    p.set_defaults(func=cmd_checkpoints)

    p = subparsers.add_parser("supply", help="Total supply")
    p.add_argument("--at", type=int, help="Historical clock value")
    p.set_defaults(func=cmd_supply)

    p = subparsers.add_parser("delegations", help="Delegation set of an account")
    p.add_argument("account")
    p.set_defaults(func=cmd_delegations)

    p = subparsers.add_parser("balance", help="Account balance")
    p.add_argument("address")
    p.set_defaults(func=cmd_balance)

    args = parser.parse_args(argv)
    args.func(args)

if __name__ == "__main__":
    main()
