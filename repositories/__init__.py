"""Persistence layer: Supabase client and repository functions."""
