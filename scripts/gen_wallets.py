#!/usr/bin/env python3
"""
Generate throwaway Base Sepolia and Solana devnet wallets.

Never fund these on mainnet.
"""

import sys

from usdc_pay.wallets import env_lines, generate_wallets


def main() -> int:
    wallets = generate_wallets()
    rule = "=" * 60

    print(rule)
    print("  Testnet wallets generated (DO NOT USE ON MAINNET)")
    print(rule)
    print()
    print("Base Sepolia")
    print(f"  Address:     {wallets.base_address}")
    print(f"  Private key: {wallets.base_private_key}")
    print()
    print("Solana devnet")
    print(f"  Address:     {wallets.solana_address}")
    print(f"  Private key: {wallets.solana_private_key}")
    print()
    print("Next steps:")
    print("  1. Base Sepolia ETH for gas: https://www.alchemy.com/faucets/base-sepolia")
    print("  2. Testnet USDC on both chains: https://faucet.circle.com/")
    print(f"  3. Devnet SOL for gas: solana airdrop 2 {wallets.solana_address} --url devnet")
    print("  4. Export these variables before starting the server:")
    print()
    for line in env_lines(wallets):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
