"""Base models shared across the portfolio."""

from dataclasses import dataclass, field

MISSING_LOCALITY = "Sin localidad"
MISSING_NAME = "Sin nombre"
MISSING_CLIENT_CODE = "Sin código"


@dataclass
class Location:
    """Locality a lead serves (e.g. a town or colonia)."""

    location_id: str
    name: str


@dataclass
class Address:
    """Postal address; only its location matters for classification."""

    address_id: str
    location: Location | None = None
    street: str = ""


@dataclass
class PersonalData:
    """Person record shared by borrowers and leads.

    The first entry of ``addresses`` is the canonical one.
    """

    full_name: str = ""
    client_code: str = ""
    addresses: list[Address] = field(default_factory=list)

    @property
    def locality(self) -> str:
        """Name of the first address's location, or the placeholder."""
        if not self.addresses or self.addresses[0].location is None:
            return MISSING_LOCALITY
        return self.addresses[0].location.name or MISSING_LOCALITY
