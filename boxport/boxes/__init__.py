"""
Box import package.

Usage:
    from boxport.boxes import import_box
    from boxport.boxes.reconcile import reconcile
"""
from boxport.boxes.artifacts import upload_artifacts
from boxport.boxes.importer import import_box, submit_box
from boxport.boxes.loader import LoadedBox, load_box
from boxport.boxes.reconcile import ImportPlan, reconcile
from boxport.boxes.remote import LookupStatus, RemoteLookup, fetch_remote_box

__all__ = [
    "import_box",
    "submit_box",
    "load_box",
    "LoadedBox",
    "reconcile",
    "ImportPlan",
    "fetch_remote_box",
    "RemoteLookup",
    "LookupStatus",
    "upload_artifacts",
]
