"""Load a ticket snapshot (products, repair centers, tickets) from a YAML or JSON file.

Expected document:
    products:       [{id, name, sku}]
    repair_centers: [{id, name}]
    tickets:        [{id, product_id, ticket_type, status, created_at, ...}]

Existing rows with the same id are replaced.
"""
import logging
import yaml
from pathlib import Path

from models.tickets import Product, RepairCenter, Ticket

logger = logging.getLogger("repairwatch.importer")


class SnapshotImporter:
    def __init__(self, db):
        self.db = db

    def import_file(self, path):
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {path}")
        # JSON documents parse as YAML too
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return self.import_data(data)

    def import_data(self, data):
        products = self._parse(data.get("products", []), "product", ("id", "sku"),
                               lambda r: Product(id=str(r["id"]), name=r.get("name", r["sku"]),
                                                 sku=r["sku"]))
        centers = self._parse(data.get("repair_centers", []), "repair center", ("id", "name"),
                              lambda r: RepairCenter(id=str(r["id"]), name=r["name"]))
        tickets = self._parse(data.get("tickets", []), "ticket",
                              ("id", "product_id", "created_at"), Ticket.from_dict)

        if products:
            self.db.save_products(products)
        if centers:
            self.db.save_repair_centers(centers)
        if tickets:
            self.db.save_tickets(tickets)

        counts = {"products": len(products), "repair_centers": len(centers),
                  "tickets": len(tickets)}
        logger.info(f"Imported {counts['products']} products, {counts['repair_centers']} "
                    f"repair centers, {counts['tickets']} tickets")
        return counts

    @staticmethod
    def _parse(rows, kind, required, build):
        parsed = []
        for i, row in enumerate(rows):
            missing = [k for k in required if row.get(k) in (None, "")]
            if missing:
                logger.warning(f"Skipping {kind} #{i}: missing {', '.join(missing)}")
                continue
            try:
                parsed.append(build(row))
            except (KeyError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping {kind} #{i}: {e}")
        return parsed
