"""Protocol building blocks, leaves first: field, sharing, group, lhe, hybrid, context, protocol."""
