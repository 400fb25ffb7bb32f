#!/usr/bin/env python3
"""
contactshare CLI - Command Line Interface for contact exchange

Provides:
- show: present the local identity as an interchange payload
- decode: validate and inspect a scanned payload
"""

import sys
import asyncio
import logging
from typing import Optional, Tuple

import click
from cryptography.exceptions import UnsupportedAlgorithm
from pydantic import ValidationError

from . import __version__
from .codec.contact_codec import ContactCodec
from .config import ExchangeConfig
from .crypto import IdentityKeyPair, fixed_length_key_validator
from .errors import DecodeError
from .models.contact import Contact
from .registry.identity_registry import InMemoryIdentityRegistry
from .session.exchange_session import ExchangeSession, ExchangeState


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )


@click.group()
@click.version_option(version=__version__, prog_name="contactshare")
@click.option('--verbose', '-v', is_flag=True, help='Verbose logging on stderr')
def main(verbose: bool):
    """contactshare - exchange identity records out-of-band"""
    _configure_logging(verbose)


@main.command()
@click.option('--name', required=True, help='Display name of the local identity')
@click.option('--address', 'addresses', multiple=True, help='Network address, repeat in priority order')
@click.option('--key-file', type=click.Path(dir_okay=False), help='Ed25519 key file, created if missing')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Hand the payload off to this file')
def show(name: str, addresses: Tuple[str, ...], key_file: Optional[str], output: Optional[str]):
    """Present the local identity as a payload"""
    try:
        key_pair = IdentityKeyPair.load_or_create(key_file) if key_file else IdentityKeyPair()
    except (ValueError, TypeError, UnsupportedAlgorithm, OSError) as e:
        click.echo(f"Error: Cannot load identity key from {key_file}: {e}", err=True)
        sys.exit(1)

    try:
        own_contact = Contact(name=name, public_key=key_pair.public_key_bytes, addresses=addresses)
    except ValidationError as e:
        click.echo(f"Error: Invalid identity: {e.errors()[0]['msg']}", err=True)
        sys.exit(1)

    registry = InMemoryIdentityRegistry(own_contact=own_contact)
    error = asyncio.run(_run_show(registry, output))
    if error is not None:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)


async def _run_show(registry: InMemoryIdentityRegistry, output: Optional[str]) -> Optional[str]:
    def write_payload(payload: str) -> None:
        with open(output, "w", encoding="utf-8") as f:
            f.write(payload)
        click.echo(f"Payload written to: {output}", err=True)

    session = ExchangeSession.for_registry(
        registry,
        config=ExchangeConfig.from_env(),
        on_present=click.echo,
        share_handler=write_payload if output else None,
    )

    async with session:
        session.start()
        state = await session.wait_settled()
        if state is not ExchangeState.PRESENTING:
            return session.failure_message or f"Exchange ended: {session.termination_reason}"
        if output:
            await session.share()
            if session.error is not None:
                return session.failure_message
    return None


@main.command()
@click.argument('payload')
@click.option('--key-length', type=int, help='Accept keys of this many bytes instead of Ed25519 keys')
def decode(payload: str, key_length: Optional[int]):
    """Decode a payload (use - to read from stdin)"""
    if payload == '-':
        payload = sys.stdin.read().strip()

    codec = ContactCodec(fixed_length_key_validator(key_length) if key_length else None)
    try:
        contact = codec.decode(payload)
    except DecodeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"name:        {contact.name}")
    click.echo(f"key id:      {contact.key_id}")
    click.echo(f"addresses:   {', '.join(contact.addresses) or '-'}")
    click.echo(f"verified:    {'yes' if contact.verified else 'no'}")
    click.echo(f"fingerprint: {codec.fingerprint(payload)}")


if __name__ == '__main__':
    main()
