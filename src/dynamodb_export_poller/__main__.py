from dynamodb_export_poller.cli import main

raise SystemExit(main())
