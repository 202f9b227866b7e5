"""Static registry of known malicious Solana addresses.

Entries come from community reports, blockchain forensics and public
records. The lookup map is built once at import and never mutated.
"""

from typing import Dict, Iterable, Optional, Tuple

from agentshield.models import ScamEntry


SCAM_ADDRESSES: Tuple[ScamEntry, ...] = (
    # ── Wallet drainers ──
    ScamEntry(
        address="Drainer1111111111111111111111111111111111111",
        category="drain", severity="critical", reportedAt="2024-01-01",
        description="Template drainer address, placeholder for pattern testing",
    ),
    ScamEntry(
        address="5wkyL3dBbKCjMiVMFzPxjW3B6Hs4tN7fMrJJoSKHAqs",
        category="drain", severity="critical", reportedAt="2024-01-15",
        description="Rainbow Drainer, multi-chain wallet drainer operation",
        source="community-reports",
    ),
    ScamEntry(
        address="GvBfMHwLjQvcKDiGhJvTzPBUXHBGtvwMsFdYyBJdSBU9",
        category="drain", severity="critical", reportedAt="2024-02-01",
        description="Solana drainer kit associated with fake NFT mint sites",
        source="blockchain-forensics",
    ),

    # ── Phishing ──
    ScamEntry(
        address="FakeDrop11111111111111111111111111111111111",
        category="phishing", severity="high", reportedAt="2024-03-01",
        description="Fake airdrop campaign targeting Solana users",
    ),
    ScamEntry(
        address="2fGfCPJn9MRy5SLBJ8Jh9gNG3dJXkSqfh4ZR8pG5SxAc",
        category="phishing", severity="critical", reportedAt="2024-06-10",
        description="Phishing site impersonating Jupiter aggregator",
        source="community-reports",
    ),
    ScamEntry(
        address="BFXGSqcA2ZPdSjpEhBZvTLxkEfPbBMnRJv5vyhxKJCBj",
        category="phishing", severity="critical", reportedAt="2024-04-15",
        description="Fake Phantom wallet update phishing campaign",
        source="solana-security",
    ),

    # ── Rug pulls ──
    ScamEntry(
        address="BoNKEjnQcNUj6YBLKfn2tF5Xt3PQhBsEahjNHVFbRq9R",
        category="rugpull", severity="high", reportedAt="2024-01-20",
        description="BONK copycat rug pull token deployer",
        source="rugcheck",
    ),
    ScamEntry(
        address="4k3DyjzvzaEGP2gfLjcKP4LBG9LMiTm5U5wGaX68BrJ",
        category="rugpull", severity="critical", reportedAt="2024-05-01",
        description="Serial rug pull deployer, 12+ tokens pulled",
        source="community-reports",
    ),
    ScamEntry(
        address="FRogGRJa2B4AVqBxd3Fxv7VmRdGMuCpUXjJF7JkZzsa",
        category="rugpull", severity="high", reportedAt="2024-03-15",
        description="Fake FROG token rug pull",
        source="community-reports",
    ),

    # ── Mixing / laundering ──
    ScamEntry(
        address="CyZuD7RPDcrqCGbNvLCyqk6Py9cEZTKmNKujfPi3ynDd",
        category="mixer", severity="high", reportedAt="2024-02-20",
        description="Known Solana mixing service used for laundering stolen funds",
        source="blockchain-forensics",
    ),

    # ── Protocol exploits ──
    ScamEntry(
        address="Htp9MGP8Tig923ZFY7Qf2zzbMUmYneFRAhSp7vSg4wxV",
        category="exploit", severity="critical", reportedAt="2022-10-11",
        description="Mango Markets exploiter, $114M exploit October 2022",
        source="public-record",
    ),
    ScamEntry(
        address="CfVkYofcLC1iVBcYFzgdYPeiX25SVRmWvBQVHorP1A3y",
        category="exploit", severity="critical", reportedAt="2022-02-02",
        description="Associated with Wormhole bridge exploit, February 2022",
        source="public-record",
    ),
    ScamEntry(
        address="7oPa2PHQdZmjSPqvpZN7MQxnC7Dcf3uL4oLqknGLk2S",
        category="exploit", severity="critical", reportedAt="2022-03-23",
        description="Cashio stablecoin exploit, infinite mint bug March 2022",
        source="public-record",
    ),

    # ── Honeypot tokens ──
    ScamEntry(
        address="HoneyPoT1111111111111111111111111111111111",
        category="honeypot", severity="high", reportedAt="2024-04-01",
        description="Honeypot token, buy-only with no sell possible",
    ),
    ScamEntry(
        address="8dHEsGnkjfEJMhRKLnap5SMdmFwABvjTwyvsSqA8bCng",
        category="honeypot", severity="high", reportedAt="2024-07-01",
        description="Honeypot token with hidden transfer fee and sell lock",
        source="rugcheck",
    ),

    # ── General scams ──
    ScamEntry(
        address="ScamWaLLet111111111111111111111111111111111",
        category="scam", severity="high", reportedAt="2024-05-01",
        description="Generic scam wallet used in social engineering attacks",
    ),
    ScamEntry(
        address="3KS4bKeoLXZyFv2JDx2mNW3vL3FZSKhEy3ZdS79grJ5m",
        category="scam", severity="high", reportedAt="2024-06-01",
        description="Fake customer support scam impersonating Solana Foundation",
        source="community-reports",
    ),
    ScamEntry(
        address="9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM",
        category="scam", severity="medium", reportedAt="2024-08-01",
        description="Advance fee scam promising SOL doubling",
        source="community-reports",
    ),
)


def build_scam_lookup(entries: Iterable[ScamEntry] = SCAM_ADDRESSES) -> Dict[str, ScamEntry]:
    """Address -> entry map for O(1) checks."""
    return {entry.address: entry for entry in entries}


class ScamRegistry:
    """Read-only address lookup over a fixed set of ScamEntry records."""

    def __init__(self, entries: Iterable[ScamEntry] = SCAM_ADDRESSES) -> None:
        self._lookup = build_scam_lookup(entries)

    def lookup(self, address: str) -> Optional[ScamEntry]:
        return self._lookup.get(address)

    def __contains__(self, address: object) -> bool:
        return address in self._lookup

    def __len__(self) -> int:
        return len(self._lookup)


# Module-level singleton
scam_registry = ScamRegistry()
