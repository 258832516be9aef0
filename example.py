"""Example usage of the record_query library."""

from record_query import (
    QueryCatalog,
    QueryExecutor,
    RegistryManager,
    Serializer,
    type_registry_from_metadata,
)

# Describe the model as JSON metadata
metadata = {
    "types": {
        "org.example.Colour": {"kind": "enum", "values": ["RED", "GREEN", "BLUE"]},
        "org.example.Engine": {
            "kind": "concept",
            "fields": [
                {"name": "fuel", "type": "String"},
                {"name": "power", "type": "Integer"},
            ],
        },
        "org.example.Person": {
            "kind": "participant",
            "identifier": "email",
            "fields": [
                {"name": "email", "type": "String"},
                {"name": "name", "type": "String"},
            ],
        },
        "org.example.Car": {
            "kind": "asset",
            "identifier": "vin",
            "fields": [
                {"name": "vin", "type": "String"},
                {"name": "colour", "type": "org.example.Colour"},
                {"name": "engine", "type": "org.example.Engine"},
                {"name": "registered", "type": "DateTime"},
                {"name": "owner", "type": "--> org.example.Person", "optional": True},
            ],
        },
    }
}

type_registry = type_registry_from_metadata(metadata)
serializer = Serializer(type_registry)

# Load resources into their registries
cars = [
    {"$class": "org.example.Car", "vin": "VIN_1", "colour": "RED",
     "engine": {"fuel": "petrol", "power": 90}, "registered": "2019-04-01T09:00:00Z",
     "owner": "resource:org.example.Person#alice@example.com"},
    {"$class": "org.example.Car", "vin": "VIN_2", "colour": "BLUE",
     "engine": {"fuel": "electric", "power": 150}, "registered": "2021-11-15T14:30:00Z"},
    {"$class": "org.example.Car", "vin": "VIN_3", "colour": "RED",
     "engine": {"fuel": "diesel", "power": 110}, "registered": "2022-02-20T08:15:00Z",
     "owner": "resource:org.example.Person#bob@example.com"},
]
registries = RegistryManager(type_registry)
registries.add_all(serializer.from_json(car) for car in cars)

# Define named queries once, when the model is set up
catalog = QueryCatalog()
catalog.define("carsByColour", "org.example.Car", "(colour == _$colour)", "Cars of a given colour")
catalog.load("""
query powerfulCars {
  description: "Cars above a power threshold"
  statement:
      SELECT org.example.Car
          WHERE (engine.power > _$minPower)
}
""")

executor = QueryExecutor(registries, catalog)

print("Red cars:")
for car in executor.query("carsByColour", {"colour": "RED"}):
    print(f"  {car.identifier} owned by {car.get('owner')}")

print("\nCars with more than 100 hp:")
for car in executor.query("powerfulCars", {"minPower": 100}):
    print(f"  {car.identifier} ({car['engine']['fuel']})")

print("\nCars registered since 2021 that are not red:")
query = executor.build_query(
    "SELECT org.example.Car WHERE (registered >= '2021-01-01T00:00:00Z' AND NOT colour == 'RED')"
)
for car in executor.query(query):
    print(f"  {serializer.to_json(car)}")

print("\n" + "=" * 60)
print("The same queries run from the command line:")
print("  rq model.json cars.json -c \"SELECT org.example.Car WHERE (colour == 'RED')\"")
print("  rq model.json cars.json -q cars.qry -n powerfulCars -p minPower=100")
