"""Tunnel de paiement marketplace multi-sites (Stripe Connect + Supabase)."""
