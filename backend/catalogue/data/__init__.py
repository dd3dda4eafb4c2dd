from catalogue.data.taxonomies import TAXONOMIES

__all__ = ["TAXONOMIES"]
