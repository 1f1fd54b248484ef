"""
Create an owner account and its organization for local testing.
"""

import argparse
import asyncio

from app.core.credentials import CredentialIssuer
from app.core.database import get_session_context, init_db
from app.services.organizations import create_organization
from app.services.accounts import authenticate
from app.services.store import IdentityStore


async def create_owner(email: str, password: str, name: str, organization: str) -> None:
    await init_db()

    async with get_session_context() as session:
        store = IdentityStore(session)
        issuer = CredentialIssuer(session)

        if await issuer.email_registered(email):
            print(f"User {email} already exists.")
        else:
            await issuer.sign_up(email, password, name)
            print(f"Created owner: {email}")

        descriptor = await authenticate(store, issuer, email, password)
        if descriptor.organization_id is not None:
            print(f"{email} already belongs to organization {descriptor.organization_id}.")
            return

        org = await create_organization(store, descriptor, organization)
        print(f"Created organization {org.name} ({org.slug}).")
        print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create a local owner and organization.")
    parser.add_argument("--email", required=True, help="Email address for the owner")
    parser.add_argument("--password", required=True, help="Password for the owner")
    parser.add_argument("--name", default="Local Owner", help="Owner's full name")
    parser.add_argument("--organization", default="Local Organization", help="Organization name")

    args = parser.parse_args()

    asyncio.run(create_owner(args.email, args.password, args.name, args.organization))
