"""Billing: regional pricing table and Stripe SDK adapter."""
