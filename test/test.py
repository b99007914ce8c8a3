import datetime
import typedinflux as influx

client = influx.InfluxClient(db="test")
measurement = "msmt"

print("===================================")
print(client.ping(), client.get_influx_version())

print()
print("===================================")
client.create_database_if_not_exists("test")
print([row.name for row in client.show_databases().series[0].rows])

print()
print("===================================")
now = datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)
row = influx.DynamicInfluxRow({"room": "lab"}, {"temperature": 12.0}, now)
print(influx.encode_rows(measurement, [row]))
print(client.write("test", measurement, [row], influx.TimestampPrecision.SECOND))

print()
print("===================================")
result = client.show_measurements()
print([row.name for row in result.series[0].rows])

print()
print("=========== read ========================")
result_set = client.read(f'SELECT * FROM "{measurement}" ORDER BY time DESC LIMIT 1')
print(result_set.results[0].series[0].rows)

print()
print("=========== read epoch ========================")
result_set = client.read(f'SELECT * FROM "{measurement}" WHERE time >= now() - 1h', precision="s")
print(result_set.results[0].series[0].rows)
