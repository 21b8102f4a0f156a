from batchcensor.cli.main import main

main()
