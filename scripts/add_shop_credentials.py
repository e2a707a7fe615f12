#!/usr/bin/env python3
"""
Store (or replace) a shop's Admin API access token, encrypted with ENCRYPTION_KEY.
The dashboard and setup routes read it to call the Shopify Admin API.

    python scripts/add_shop_credentials.py my-store.myshopify.com shpat_xxx --scopes write_fulfillments,write_inventory
"""
import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import Base, SessionLocal, engine
from app.services.credentials import store_shop_access_token
from app.services.shopify_graphql import normalize_shop_domain

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Store a Shopify shop's Admin API access token")
    parser.add_argument("shop", help="Shop domain, e.g. my-store.myshopify.com")
    parser.add_argument("access_token", help="Admin API access token")
    parser.add_argument("--scopes", default=None, help="Comma-separated granted scopes")
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        integration = store_shop_access_token(db, normalize_shop_domain(args.shop), args.access_token, scopes=args.scopes)
        db.commit()
        logger.info("Stored access token for %s", integration.shop_domain)
    except Exception:
        db.rollback()
        logger.exception("Failed to store access token for %s", args.shop)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    sys.exit(main())
