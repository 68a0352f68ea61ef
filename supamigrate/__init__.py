"""
Firebase to Supabase Migration Toolkit

A one-shot toolkit for moving a Firebase project onto Supabase.

Supports:
- Transpiling Cloud Functions (HTTP, callable, Firestore, Auth, Storage,
  Pub/Sub and scheduled triggers) into Supabase Edge Functions
- Rewriting Firebase Admin SDK calls into supabase-js equivalents
- Exporting Firestore collections and nested subcollections into flat,
  relationally linked JSON files
- Bulk-loading exported files into Supabase tables
"""

__version__ = "0.1.0"
