from types import MappingProxyType
from typing import Optional

PRICES = MappingProxyType({
    "t-shirt": 80,
    "cup": 20,
    "book": 50,
    "pen": 10,
    "powerbank": 200,
    "hoody": 300,
    "umbrella": 200,
    "socks": 10,
    "wallet": 50,
    "pink-hoody": 500,
})


def price_of(item: str) -> Optional[int]:
    return PRICES.get(item)
