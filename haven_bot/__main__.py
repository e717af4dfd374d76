from haven_bot.bot import main

if __name__ == "__main__":
    main()
