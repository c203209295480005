from __future__ import annotations

# Lowercased raw name -> canonical display name.
# Partial matching walks this table in order, so keep longer keys ahead of
# the generic key for the same chain.
STORE_MAPPINGS: dict[str, str] = {
    # coffee
    "starbucks coffee": "Starbucks",
    "starbucks": "Starbucks",
    # restaurants
    "peng chu mid valley": "Peng Chu",
    "peng chu": "Peng Chu",
    # supermarkets
    "tesco extra": "Tesco",
    "tesco express": "Tesco",
    "tesco": "Tesco",
    # fuel
    "shell gas station": "Shell",
    "shell": "Shell",
    "petron gas station": "Petron",
    "petron": "Petron",
    # fast food
    "mcdonald's": "McDonald's",
    "mcdonalds": "McDonald's",
    "kfc": "KFC",
    "burger king": "Burger King",
    # cinema
    "gsc cinema": "GSC",
    "gsc": "GSC",
}
