from redgray.cli import main

raise SystemExit(main())
