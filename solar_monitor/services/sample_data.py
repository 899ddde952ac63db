"""Sample installations loaded when SEED_SAMPLE_DATA is enabled."""

from solar_monitor.models.installation import InstallationCreate, InstallationStatus

SAMPLE_INSTALLATIONS = [
    InstallationCreate(
        device_id="KA-BLR-001",
        location="Whitefield Tech Park",
        district="Bengaluru Urban",
        latitude=12.9698,
        longitude=77.7500,
        annual_money_saved=185000.0,
        annual_electricity_saved=21500.0,
        annual_solar_energy_usage=24000.0,
        surface_area=120.0,
        cost_per_square_meter=4200.0,
    ),
    InstallationCreate(
        device_id="KA-MYS-001",
        location="Mysuru Palace Road",
        district="Mysuru",
        latitude=12.3052,
        longitude=76.6552,
        annual_money_saved=64000.0,
        annual_electricity_saved=7400.0,
        annual_solar_energy_usage=8200.0,
        surface_area=45.0,
        cost_per_square_meter=3900.0,
    ),
    InstallationCreate(
        device_id="KA-PAV-001",
        location="Pavagada Solar Park",
        district="Tumakuru",
        latitude=14.1000,
        longitude=77.2800,
        annual_money_saved=920000.0,
        annual_electricity_saved=110000.0,
        annual_solar_energy_usage=125000.0,
        surface_area=600.0,
        cost_per_square_meter=3500.0,
        status=InstallationStatus.MAINTENANCE,
    ),
]
