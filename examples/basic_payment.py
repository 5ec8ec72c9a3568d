"""
Example: Basic Payment Flow

Walks through the /pay → /confirm flow a chat bot drives, against a live
SocialPay deployment. Reads EXECUTOR_PRIVATE_KEY, SOCIALPAY_CONTRACT and
SEPOLIA_RPC_URL from the environment (or a .env file).

    python examples/basic_payment.py alice 1.5
"""

import asyncio
import sys

from dotenv import load_dotenv
load_dotenv()

from socialpay import OutcomeStatus, PaymentProgress, SocialPay


async def show_progress(progress: PaymentProgress) -> None:
    if progress.tx_hash:
        print(f"   {progress.stage.value}: {progress.tx_hash}")
    else:
        print(f"   {progress.stage.value}")


async def main(recipient: str, amount: str) -> None:
    print("=== SocialPay Basic Example ===\n")

    async with SocialPay() as pay:
        print(f"✅ Signer: {pay.signer_address}")

        # Step 1: Look up the recipient
        check = await pay.check_handle(recipient)
        if check.success:
            status = "claimed" if check.info.is_claimed else "unclaimed"
            print(f"✅ @{check.handle} is {status}, pending {check.info.pending_balance_decimal} "
                  f"{pay.config.token_symbol}")
        else:
            print(f"⚠️  Lookup failed: {check.error}")

        # Step 2: /pay
        user_id = 1
        proposed = await pay.request_payment(user_id, "socialpay_demo", recipient, amount)
        if proposed.status != OutcomeStatus.PROPOSED:
            print(f"❌ Rejected ({proposed.rejection.value}): {proposed.error}")
            return
        print(f"📝 Proposed {amount} to @{proposed.recipient_handle} "
              f"(confirm within {proposed.metadata['expires_in']:.0f}s)")

        # Step 3: /confirm
        print("\n📤 Confirming...")
        outcome = await pay.confirm_payment(user_id, on_progress=show_progress)

        if outcome.status == OutcomeStatus.SETTLED:
            print(f"✅ Payment settled! Tx: {outcome.tx_hash}")
            if outcome.recipient_info and not outcome.recipient_info.is_claimed:
                print(f"   @{outcome.recipient_handle} can claim at {pay.claim_portal_url()}")
        else:
            print(f"⚠️  Payment {outcome.status.value}: {outcome.error}")

    print("\n=== Example Complete ===")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("usage: basic_payment.py <handle> <amount>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2]))
