from fixture_alchemy.utils import module_loader, text

__all__ = ("module_loader", "text")
