from goll.cli import main

raise SystemExit(main())
