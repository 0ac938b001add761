import unittest

from contracts.openotp import SERVICE_NAMES, LicenseDetails, ServerServices
from contracts.rpc import RPCError, RPCRequest, RPCResponse


class TestRPCContracts(unittest.TestCase):
    def test_request_without_params(self):
        request = RPCRequest(method="Get_License_Details", id=1)
        self.assertEqual(
            request.to_wire(), {"jsonrpc": "2.0", "method": "Get_License_Details", "id": 1}
        )

    def test_request_with_params(self):
        request = RPCRequest(method="Server_status", params={"servers": True}, id=2)
        self.assertEqual(request.to_wire()["params"], {"servers": True})

    def test_response_result(self):
        response = RPCResponse.model_validate({"jsonrpc": "2.0", "result": 7, "id": 0})
        self.assertEqual(response.result, 7)
        self.assertIsNone(response.error)

    def test_response_error(self):
        response = RPCResponse.model_validate(
            {"jsonrpc": "2.0", "error": {"code": -32000, "message": "Denied"}, "id": 0}
        )
        self.assertIsInstance(response.error, RPCError)
        self.assertEqual(str(response.error), "Denied (code -32000)")

    def test_request_validation(self):
        # method and id are required
        with self.assertRaises(Exception):
            RPCRequest()


class TestOpenOTPContracts(unittest.TestCase):
    def test_service_names(self):
        self.assertEqual(
            sorted(SERVICE_NAMES.values()),
            ["database", "directory", "mail", "proxy", "public-key", "session"],
        )

    def test_by_service_name(self):
        servers = ServerServices(ldap=True, mail=False, pki=True, proxy=False, session=True, sql=False)
        self.assertEqual(
            servers.by_service_name(),
            {
                "directory": True,
                "mail": False,
                "public-key": True,
                "proxy": False,
                "session": True,
                "database": False,
            },
        )

    def test_license_defaults(self):
        details = LicenseDetails(customer_id="c", instance_id="i")
        self.assertIsNone(details.max_users)
        self.assertEqual(details.valid_from, 0.0)
        self.assertEqual(details.error_message, "")

    def test_license_dumps_plain_values(self):
        details = LicenseDetails(customer_id="c", instance_id="i", max_users=10.0)
        self.assertEqual(
            details.model_dump(),
            {
                "customer_id": "c",
                "instance_id": "i",
                "max_users": 10.0,
                "valid_from": 0.0,
                "valid_to": 0.0,
                "error_message": "",
            },
        )


if __name__ == "__main__":
    unittest.main()
